"""LLMClient — injectable backend handle for the two call shapes sheetfill uses.

Wraps LiteLLM:
    - search():   Responses API with the web_search_preview tool, returning
                  the final message text plus url_citation annotations.
    - complete(): plain chat completion, text only.

Raw LiteLLM objects never leave this module: both calls return a member of
the BackendResponse tagged union, and every backend exception is re-raised
as a classified SheetfillError.
"""

from __future__ import annotations

import logging
from typing import Any

from sheetfill.env_config import Settings
from sheetfill.errors import ConfigurationError, ParseAnomaly, classify_backend_error
from sheetfill.models import CompletionResponse, SearchResponse
from sheetfill.usage import UsageTracker

logger = logging.getLogger("sheetfill.llm_client")

WEB_SEARCH_TOOL: dict[str, str] = {"type": "web_search_preview"}


class LLMClient:
    """Backend caller bound to one immutable Settings value.

    Usage:
        client = LLMClient(get_settings())
        reply = await client.search("Find the official website of Acme Corp", model="gpt-4o")
        reply.text, reply.citations
    """

    def __init__(self, settings: Settings, usage: UsageTracker | None = None):
        if not settings.has_credentials:
            raise ConfigurationError()
        self.settings = settings
        self.usage = usage or UsageTracker()

    async def search(self, prompt: str, model: str) -> SearchResponse:
        """Tool-augmented call: the model must run a web search before answering."""
        import litellm

        try:
            resp = await litellm.aresponses(
                model=model,
                input=prompt,
                tools=[WEB_SEARCH_TOOL],
                tool_choice=WEB_SEARCH_TOOL,
                temperature=self.settings.temperature,
                timeout=self.settings.timeout,
                api_key=self.settings.api_key,
            )
        except Exception as e:
            logger.warning(f"Search call with {model} failed: {e}")
            raise classify_backend_error(e) from e

        self.usage.record_from_response(resp, model=model)
        reply = parse_search_output(resp, model=model)
        logger.debug(f"Search response from {model}: {reply.text[:100]!r} ({len(reply.citations)} citations)")
        return reply

    async def complete(
        self,
        user_message: str,
        model: str,
        system_prompt: str = "",
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> CompletionResponse:
        """Plain chat completion with no tool access."""
        import litellm

        messages: list[dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_message})

        try:
            resp = await litellm.acompletion(
                model=model,
                messages=messages,
                max_tokens=max_tokens if max_tokens is not None else self.settings.max_tokens,
                temperature=temperature if temperature is not None else self.settings.temperature,
                timeout=self.settings.timeout,
                api_key=self.settings.api_key,
            )
        except Exception as e:
            logger.warning(f"Completion call with {model} failed: {e}")
            raise classify_backend_error(e) from e

        self.usage.record_from_response(resp, model=model)
        reply = parse_completion_output(resp, model=model)
        logger.debug(f"Completion from {model}: {reply.text[:100]!r}")
        return reply


def _field(obj: Any, name: str) -> Any:
    """Read a field from either a dict payload or an SDK object."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def parse_search_output(resp: Any, model: str = "") -> SearchResponse:
    """Pull the last message's output_text and its url_citation annotations.

    An output list without any message (e.g. only tool-call items) is a valid
    but empty answer. A response with no output list at all is a ParseAnomaly.
    """
    output = _field(resp, "output")
    if not isinstance(output, (list, tuple)):
        raise ParseAnomaly(f"Search response from {model} has no output list")

    messages = [item for item in output if _field(item, "type") == "message"]
    if not messages:
        return SearchResponse(text="", citations=[], model=model)

    content = _field(messages[-1], "content") or []
    text_part = next((part for part in content if _field(part, "type") == "output_text"), None)
    if text_part is None:
        return SearchResponse(text="", citations=[], model=model)

    text = _field(text_part, "text")
    citations = [
        str(_field(a, "url"))
        for a in (_field(text_part, "annotations") or [])
        if _field(a, "type") == "url_citation" and _field(a, "url")
    ]
    return SearchResponse(
        text=text.strip() if isinstance(text, str) else "",
        citations=citations,
        model=model,
    )


def parse_completion_output(resp: Any, model: str = "") -> CompletionResponse:
    """Pull choices[0].message.content out of a chat completion."""
    choices = _field(resp, "choices")
    if not choices:
        raise ParseAnomaly(f"Completion from {model} has no choices")
    content = _field(_field(choices[0], "message"), "content")
    return CompletionResponse(
        text=content.strip() if isinstance(content, str) else "",
        model=model,
    )
