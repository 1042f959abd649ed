"""CellGenerator — turns a GenerationRequest into a GenerationResult.

Validates the request, resolves the model tier, builds the prompt, runs one
gateway attempt, and formats the sources for the cell.
"""

from __future__ import annotations

import logging
from typing import Mapping

from sheetfill.env_config import Settings
from sheetfill.errors import SheetfillError, ValidationError, public_text
from sheetfill.gateway import ModelGateway
from sheetfill.models import GatewayResult, GenerationRequest, GenerationResult
from sheetfill.prompt_builder import build_cell_prompt

logger = logging.getLogger("sheetfill.generator")


def describe_sources(result: GatewayResult, context: Mapping[str, str], model: str) -> str:
    """Comma-joined source URLs, or a short description of what the answer was based on."""
    if result.sources:
        return ", ".join(result.sources)
    keys = ", ".join(context.keys())
    if result.used_search:
        return f"Company context: {keys}" if keys else "Web search results"
    return f"AI research based on company context: {keys}" if keys else f"AI research using {model}"


class CellGenerator:
    def __init__(self, gateway: ModelGateway, settings: Settings | None = None):
        self.gateway = gateway
        self.settings = settings or gateway.settings

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Single attempt. Classified errors propagate.

        Raises:
            ValidationError: prompt or column key missing; no backend call is made.
            AuthError, QuotaError, TransientBackendError: from the gateway.
        """
        if not request.prompt or not request.prompt.strip() or not request.column_key:
            raise ValidationError("Missing required fields: prompt and columnKey")

        model = self.settings.resolve_model(request.model)
        web_search = self.settings.supports_search(model)
        prompt = build_cell_prompt(request.prompt, request.context, web_search=web_search)
        plain_prompt = build_cell_prompt(request.prompt, request.context, web_search=False) if web_search else None

        logger.info(f"Generating {request.column_key!r} with {model} (search={web_search})")
        result = await self.gateway.generate(prompt, model=model, use_tools=web_search, plain_prompt=plain_prompt)

        return GenerationResult(
            value=result.value,
            source=describe_sources(result, request.context, model),
            success=True,
        )

    async def try_generate(self, request: GenerationRequest) -> GenerationResult:
        """Like generate(), but classified errors become a failed result."""
        try:
            return await self.generate(request)
        except SheetfillError as e:
            logger.warning(f"Generation for {request.column_key!r} failed: {e}")
            return GenerationResult(
                value="",
                source="",
                success=False,
                error=public_text(e),
                terminal=not e.retryable,
            )
