"""sheetfill API server — the three endpoints the spreadsheet UI calls.

Usage:
    uvicorn sheetfill.server:app --host 0.0.0.0 --port 8080
    # or
    sheetfill serve --port 8080

Curl:
    curl http://localhost:8080/fill-cell -H 'content-type: application/json' \\
        -d '{"prompt":"Find the official website","context":{"Company Name":"Acme Corp"},"columnKey":"website","rowData":{}}'
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from sheetfill.classifier import ComplexityClassifier
from sheetfill.comparator import ResultComparator
from sheetfill.env_config import Settings, get_settings
from sheetfill.errors import ConfigurationError, SheetfillError, TransientBackendError, public_text
from sheetfill.gateway import ModelGateway
from sheetfill.generator import CellGenerator
from sheetfill.llm_client import LLMClient
from sheetfill.models import Complexity, GenerationRequest, GenerationResult
from sheetfill.usage import UsageTracker

logger = logging.getLogger("sheetfill.server")


# ============================================================
# Request / Response models
# ============================================================

class CompareRequest(BaseModel):
    result1: str | None = None
    result2: str | None = None


class CompareResponse(BaseModel):
    match: bool = False
    confidence: int = 0
    success: bool | None = None
    error: str | None = None


class AssessComplexityRequest(BaseModel):
    prompt: str | None = None


class AssessComplexityResponse(BaseModel):
    complexity: Complexity = Complexity.MEDIUM
    success: bool = False
    error: str | None = None


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = ""
    fast_model: str = ""
    advanced_model: str = ""
    configured: bool = False


# ============================================================
# Service wiring
# ============================================================

@dataclass
class Services:
    """Everything the endpoints need, built once per app."""
    settings: Settings
    client: LLMClient | None = None
    generator: CellGenerator | None = None
    classifier: ComplexityClassifier | None = None
    comparator: ResultComparator | None = None

    @classmethod
    def build(cls, settings: Settings, client: LLMClient | None = None) -> "Services":
        if client is None:
            if not settings.has_credentials:
                logger.warning("OPENAI_API_KEY is not set; generation endpoints will return 500")
                return cls(settings=settings)
            client = LLMClient(settings, usage=UsageTracker())
        return cls(
            settings=settings,
            client=client,
            generator=CellGenerator(ModelGateway(client, settings), settings),
            classifier=ComplexityClassifier(client),
            comparator=ResultComparator(client),
        )

    @property
    def ready(self) -> bool:
        return self.client is not None


def _json(model: BaseModel, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=model.model_dump(mode="json", exclude_none=True))


# ============================================================
# App factory
# ============================================================

def create_app(settings: Settings | None = None, client: LLMClient | None = None) -> FastAPI:
    """Build a configured API server. Settings default to the environment."""
    settings = settings or get_settings()
    services = Services.build(settings, client)

    app = FastAPI(
        title="sheetfill API",
        description="AI spreadsheet cell generation with web search, source extraction and retries.",
        version=_version(),
    )
    app.state.services = services
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health() -> HealthResponse:
        return HealthResponse(
            version=_version(),
            fast_model=settings.fast_model,
            advanced_model=settings.advanced_model,
            configured=services.ready,
        )

    @app.post("/fill-cell", response_model=None)
    async def fill_cell(req: GenerationRequest) -> JSONResponse:
        """Generate one cell value. One attempt; retries belong to the caller."""
        if not services.ready:
            err = ConfigurationError()
            return _json(GenerationResult(success=False, error=err.public_message), err.status_code)

        try:
            result = await services.generator.generate(req)
        except SheetfillError as e:
            logger.error(f"fill-cell failed for {req.column_key!r}: {e}")
            return _json(GenerationResult(success=False, error=public_text(e)), e.status_code)
        return _json(result)

    @app.post("/compare-results", response_model=None)
    async def compare_results(req: CompareRequest) -> JSONResponse:
        if not services.ready:
            return _json(CompareResponse(match=False, confidence=0), 500)

        try:
            verdict = await services.comparator.compare(req.result1, req.result2)
        except SheetfillError as e:
            logger.error(f"compare-results failed: {e}")
            return _json(
                CompareResponse(match=False, confidence=0, success=False, error="Failed to compare results"),
                500,
            )
        return _json(CompareResponse(match=verdict.match, confidence=verdict.confidence))

    @app.post("/assess-complexity", response_model=None)
    async def assess_complexity(req: AssessComplexityRequest) -> JSONResponse:
        if not services.ready:
            err = ConfigurationError()
            return _json(AssessComplexityResponse(success=False, error=err.public_message), err.status_code)

        if not req.prompt or not req.prompt.strip():
            return _json(AssessComplexityResponse(success=False, error="Prompt is required"), 400)

        try:
            complexity = await services.classifier.assess_strict(req.prompt)
        except SheetfillError as e:
            logger.error(f"assess-complexity failed: {e}")
            error = "Failed to assess complexity" if isinstance(e, TransientBackendError) else public_text(e)
            return _json(AssessComplexityResponse(success=False, error=error), e.status_code)
        return _json(AssessComplexityResponse(complexity=complexity, success=True))

    return app


def _version() -> str:
    from sheetfill import __version__
    return __version__


app = create_app()
