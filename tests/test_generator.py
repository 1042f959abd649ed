"""Tests for CellGenerator — validation, tier resolution, source descriptions."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from sheetfill.errors import AuthError, TransientBackendError, ValidationError
from sheetfill.generator import CellGenerator, describe_sources
from sheetfill.models import GatewayResult, GenerationRequest


def _generator(settings, result=None, error=None) -> CellGenerator:
    gateway = MagicMock()
    gateway.settings = settings
    gateway.generate = AsyncMock(return_value=result, side_effect=error)
    return CellGenerator(gateway, settings)


class TestDescribeSources:
    def test_urls_joined(self):
        result = GatewayResult(value="x", sources=["https://a.com", "https://b.com"], used_search=True)
        assert describe_sources(result, {}, "gpt-4o") == "https://a.com, https://b.com"

    def test_search_with_context(self):
        result = GatewayResult(value="x", used_search=True)
        assert describe_sources(result, {"Company Name": "Acme", "Website": "acme.com"}, "gpt-4o") == \
            "Company context: Company Name, Website"

    def test_search_without_context(self):
        assert describe_sources(GatewayResult(used_search=True), {}, "gpt-4o") == "Web search results"

    def test_completion_with_context(self):
        assert describe_sources(GatewayResult(), {"Company Name": "Acme"}, "o3") == \
            "AI research based on company context: Company Name"

    def test_completion_without_context(self):
        assert describe_sources(GatewayResult(), {}, "o3") == "AI research using o3"


class TestGenerate:
    @pytest.mark.asyncio
    async def test_success(self, settings):
        gen = _generator(settings, GatewayResult(value="https://acme.com", sources=["https://acme.com"], used_search=True))
        result = await gen.generate(GenerationRequest(
            prompt="Find the official website",
            context={"Company Name": "Acme Corp"},
            column_key="website",
        ))

        assert result.success is True
        assert result.value == "https://acme.com"
        assert result.source == "https://acme.com"
        prompt = gen.gateway.generate.call_args.args[0]
        assert "Company Name: Acme Corp" in prompt
        assert prompt.rstrip().endswith("return only the requested information, nothing else.")

    @pytest.mark.asyncio
    async def test_default_model_is_advanced(self, settings):
        gen = _generator(settings, GatewayResult(value="x"))
        await gen.generate(GenerationRequest(prompt="p", column_key="k"))
        kwargs = gen.gateway.generate.call_args.kwargs
        assert kwargs["model"] == settings.advanced_model
        assert kwargs["use_tools"] is True

    @pytest.mark.asyncio
    async def test_fast_tier(self, settings):
        gen = _generator(settings, GatewayResult(value="x"))
        await gen.generate(GenerationRequest(prompt="p", column_key="k", model="fast"))
        assert gen.gateway.generate.call_args.kwargs["model"] == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_non_search_model_gets_plain_prompt(self, settings):
        gen = _generator(settings, GatewayResult(value="x"))
        await gen.generate(GenerationRequest(prompt="p", column_key="k", model="o3"))

        prompt = gen.gateway.generate.call_args.args[0]
        assert gen.gateway.generate.call_args.kwargs["use_tools"] is False
        assert "web search" not in prompt.lower()

    @pytest.mark.asyncio
    async def test_search_model_also_gets_plain_fallback_prompt(self, settings):
        gen = _generator(settings, GatewayResult(value="x"))
        await gen.generate(GenerationRequest(prompt="Find the CEO", column_key="ceo", model="fast"))

        call = gen.gateway.generate.call_args
        assert "web search" in call.args[0].lower()
        plain = call.kwargs["plain_prompt"]
        assert "web search" not in plain.lower()
        assert "Find the CEO" in plain

    @pytest.mark.asyncio
    async def test_non_search_model_has_no_plain_fallback(self, settings):
        gen = _generator(settings, GatewayResult(value="x"))
        await gen.generate(GenerationRequest(prompt="p", column_key="k", model="o3"))
        assert gen.gateway.generate.call_args.kwargs["plain_prompt"] is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("prompt, key", [("", "website"), ("   ", "website"), ("Find it", "")])
    async def test_missing_fields(self, settings, prompt, key):
        gen = _generator(settings, GatewayResult())
        with pytest.raises(ValidationError, match="Missing required fields: prompt and columnKey"):
            await gen.generate(GenerationRequest(prompt=prompt, column_key=key))
        gen.gateway.generate.assert_not_called()


class TestTryGenerate:
    @pytest.mark.asyncio
    async def test_error_becomes_failed_result(self, settings):
        gen = _generator(settings, error=AuthError())
        result = await gen.try_generate(GenerationRequest(prompt="p", column_key="k"))

        assert result.success is False
        assert result.error == "Invalid API key"
        assert result.value == ""
        assert result.terminal is True

    @pytest.mark.asyncio
    async def test_validation_error_keeps_its_message(self, settings):
        gen = _generator(settings, GatewayResult())
        result = await gen.try_generate(GenerationRequest(prompt="   ", column_key="website"))

        assert result.success is False
        assert result.error == "Missing required fields: prompt and columnKey"
        assert result.terminal is True
        gen.gateway.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_transient_error_is_not_terminal(self, settings):
        gen = _generator(settings, error=TransientBackendError("upstream 503"))
        result = await gen.try_generate(GenerationRequest(prompt="p", column_key="k"))

        assert result.success is False
        assert result.terminal is False
