"""ModelGateway — one generation attempt against the backend, normalized.

Call order for a search-capable model:

    search(model) ──fail──▶ search(fallback_model) ──fail──▶ complete(model)

Credential and quota errors are never retried here; they propagate at once.
A search answer that carries no source at all gets one best-effort
follow-up completion asking the model to cite "(Source: <url>)".
"""

from __future__ import annotations

import logging

from sheetfill.env_config import Settings
from sheetfill.errors import AuthError, ParseAnomaly, QuotaError, SheetfillError
from sheetfill.llm_client import LLMClient
from sheetfill.models import (
    NOT_FOUND,
    BackendResponse,
    CompletionResponse,
    GatewayResult,
    SearchResponse,
)
from sheetfill.prompt_registry import PromptRegistry, default_registry
from sheetfill.sanitizer import dedupe_urls, sanitize_response

logger = logging.getLogger("sheetfill.gateway")


class ModelGateway:
    """Selects a call shape, invokes the backend, and normalizes the reply."""

    def __init__(
        self,
        client: LLMClient,
        settings: Settings | None = None,
        registry: PromptRegistry | None = None,
    ):
        self.client = client
        self.settings = settings or client.settings
        self.registry = registry or default_registry()

    async def generate(
        self,
        prompt: str,
        model: str,
        use_tools: bool = True,
        plain_prompt: str | None = None,
    ) -> GatewayResult:
        """Run one attempt and return {value, sources}.

        Args:
            prompt: Directive for the first call shape tried.
            plain_prompt: Directive without the web-search mandate, sent instead
                of `prompt` when the search shape fails and the plain completion
                takes over.

        Raises:
            AuthError, QuotaError: never retried.
            TransientBackendError: when every call shape failed.
        """
        completion_prompt = prompt
        if use_tools and self.settings.supports_search(model):
            reply = await self._search_with_fallback(prompt, model)
            if reply is not None:
                return await self._finish_search(prompt, reply)
            logger.info(f"Search unavailable for {model}, falling back to plain completion")
            completion_prompt = plain_prompt or prompt

        try:
            reply = await self.client.complete(completion_prompt, model=model)
        except ParseAnomaly as e:
            logger.warning(f"Unrecognized completion shape: {e}")
            return GatewayResult(value=NOT_FOUND, sources=[], model_used=model, used_search=False)
        return self._normalize(reply)

    async def _search_with_fallback(self, prompt: str, model: str) -> SearchResponse | None:
        """Try the search shape on `model`, then once on the fallback model.

        Returns None when both attempts failed with a non-terminal error.
        """
        candidates = [model]
        if self.settings.fallback_model and self.settings.fallback_model != model:
            candidates.append(self.settings.fallback_model)

        for candidate in candidates:
            try:
                return await self.client.search(prompt, model=candidate)
            except (AuthError, QuotaError):
                raise
            except ParseAnomaly as e:
                logger.warning(f"Unrecognized search response shape from {candidate}: {e}")
                return SearchResponse(text="", citations=[], model=candidate)
            except SheetfillError as e:
                logger.warning(f"Search with {candidate} failed ({e}), trying next option")
        return None

    async def _finish_search(self, prompt: str, reply: SearchResponse) -> GatewayResult:
        result = self._normalize(reply)
        if not result.sources and result.value != NOT_FOUND:
            cited = await self._request_citations(prompt, result.value, reply.model)
            if cited:
                result.sources = cited
        return result

    def _normalize(self, reply: BackendResponse) -> GatewayResult:
        """Exhaustive match over the response union."""
        cleaned = sanitize_response(reply.text)
        if isinstance(reply, SearchResponse):
            sources = dedupe_urls([*reply.citations, *cleaned.extracted_urls], limit=self.settings.max_sources)
            return GatewayResult(
                value=cleaned.clean_text,
                sources=sources,
                model_used=reply.model,
                used_search=True,
            )
        if isinstance(reply, CompletionResponse):
            return GatewayResult(
                value=cleaned.clean_text,
                sources=dedupe_urls(cleaned.extracted_urls, limit=self.settings.max_sources),
                model_used=reply.model,
                used_search=False,
            )
        raise TypeError(f"Unhandled backend response type: {type(reply).__name__}")

    async def _request_citations(self, prompt: str, answer: str, model: str) -> list[str]:
        """Best effort: ask for "(Source: <url>)" citations for an uncited answer."""
        entry = self.registry.get_entry("cite_sources")
        system_prompt = self.registry.get("cite_sources", task=prompt, answer=answer)
        try:
            reply = await self.client.complete(
                "Cite the sources for this answer.",
                model=model or self.settings.fallback_model,
                system_prompt=system_prompt,
                max_tokens=entry.max_tokens,
                temperature=entry.temperature,
            )
        except SheetfillError as e:
            logger.info(f"Citation follow-up failed, keeping uncited answer: {e}")
            return []
        return dedupe_urls(sanitize_response(reply.text).extracted_urls, limit=self.settings.max_sources)
