"""Tests for RetryController — attempt budget, backoff, terminal errors, timeouts."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from sheetfill.errors import AuthError, QuotaError, TransientBackendError, ValidationError
from sheetfill.generator import CellGenerator
from sheetfill.models import GenerationRequest, GenerationResult
from sheetfill.retry import AttemptOutcome, RetryController, classify_failure


def _ok(value: str = "Acme") -> GenerationResult:
    return GenerationResult(value=value, source="https://acme.com", success=True)


def _failed(error: str) -> GenerationResult:
    return GenerationResult(success=False, error=error)


class TestClassifyFailure:
    @pytest.mark.parametrize("error", [
        "Invalid API key",
        "Incorrect API key provided",
        "API quota exceeded",
        AuthError(),
        QuotaError(),
        ValidationError("Missing required fields: prompt and columnKey"),
    ])
    def test_terminal(self, error):
        assert classify_failure(error) is AttemptOutcome.TERMINAL_FAILURE

    @pytest.mark.parametrize("error", ["Failed to generate content", TransientBackendError(), None, "api KEY"])
    def test_retryable(self, error):
        assert classify_failure(error) is AttemptOutcome.RETRYABLE_FAILURE


class TestBackoff:
    def test_exponential(self):
        controller = RetryController(base_delay=1.0)
        assert [controller.backoff(n) for n in range(3)] == [1.0, 2.0, 4.0]

    def test_max_attempts(self):
        assert RetryController(max_retries=2).max_attempts == 3
        assert RetryController(max_retries=0).max_attempts == 1


class TestRun:
    @pytest.mark.asyncio
    async def test_first_attempt_succeeds(self):
        sleep = AsyncMock()
        attempt = AsyncMock(return_value=_ok())
        result = await RetryController(sleep=sleep).run(attempt)

        assert result.success is True
        assert attempt.await_count == 1
        sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_succeeds_after_retries(self):
        sleep = AsyncMock()
        attempt = AsyncMock(side_effect=[_failed("Failed to generate content"), _ok()])
        result = await RetryController(sleep=sleep).run(attempt)

        assert result.value == "Acme"
        assert attempt.await_count == 2
        sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_exhausted_budget(self):
        sleep = AsyncMock()
        attempt = AsyncMock(return_value=_failed("Failed to generate content"))
        result = await RetryController(max_retries=2, sleep=sleep).run(attempt)

        assert result.success is False
        assert result.error == "Failed after 3 attempts: Failed to generate content"
        assert attempt.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_terminal_message_stops_immediately(self):
        sleep = AsyncMock()
        attempt = AsyncMock(return_value=_failed("Invalid API key"))
        result = await RetryController(sleep=sleep).run(attempt)

        assert result.error == "Invalid API key"
        assert attempt.await_count == 1
        sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_quota_stops_immediately(self):
        attempt = AsyncMock(return_value=_failed("API quota exceeded"))
        result = await RetryController(sleep=AsyncMock()).run(attempt)
        assert result.error == "API quota exceeded"
        assert attempt.await_count == 1

    @pytest.mark.asyncio
    async def test_raised_transient_error_retried(self):
        attempt = AsyncMock(side_effect=[TransientBackendError(), _ok()])
        result = await RetryController(sleep=AsyncMock()).run(attempt)
        assert result.success is True

    @pytest.mark.asyncio
    async def test_raised_auth_error_terminal(self):
        attempt = AsyncMock(side_effect=AuthError())
        result = await RetryController(sleep=AsyncMock()).run(attempt)
        assert result.error == "Invalid API key"
        assert attempt.await_count == 1

    @pytest.mark.asyncio
    async def test_zero_retries(self):
        attempt = AsyncMock(return_value=_failed("boom"))
        result = await RetryController(max_retries=0, sleep=AsyncMock()).run(attempt)
        assert result.error == "Failed after 1 attempts: boom"

    @pytest.mark.asyncio
    async def test_attempt_timeout_is_retryable(self):
        calls = 0

        async def attempt() -> GenerationResult:
            nonlocal calls
            calls += 1
            if calls == 1:
                await asyncio.sleep(1)
            return _ok()

        result = await RetryController(attempt_timeout=0.01, sleep=AsyncMock()).run(attempt)
        assert result.success is True
        assert calls == 2

    @pytest.mark.asyncio
    async def test_every_attempt_times_out(self):
        async def attempt() -> GenerationResult:
            await asyncio.sleep(1)
            return _ok()

        result = await RetryController(max_retries=1, attempt_timeout=0.01, sleep=AsyncMock()).run(attempt)
        assert result.error == "Failed after 2 attempts: Timed out after 0.01s"

    @pytest.mark.asyncio
    async def test_terminal_flag_stops_immediately(self):
        sleep = AsyncMock()
        attempt = AsyncMock(return_value=GenerationResult(success=False, error="Invalid request", terminal=True))
        result = await RetryController(sleep=sleep).run(attempt)

        assert result.error == "Invalid request"
        assert attempt.await_count == 1
        sleep.assert_not_called()


class TestWithGenerator:
    @pytest.mark.asyncio
    async def test_invalid_request_is_not_retried(self, settings):
        gateway = MagicMock()
        gateway.settings = settings
        gateway.generate = AsyncMock()
        generator = CellGenerator(gateway, settings)
        request = GenerationRequest(prompt="   ", column_key="website")
        calls = 0

        async def attempt() -> GenerationResult:
            nonlocal calls
            calls += 1
            return await generator.try_generate(request)

        sleep = AsyncMock()
        result = await RetryController(sleep=sleep).run(attempt)

        assert result.success is False
        assert result.error == "Missing required fields: prompt and columnKey"
        assert calls == 1
        sleep.assert_not_called()
        gateway.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_transient_gateway_error_is_retried(self, settings):
        gateway = MagicMock()
        gateway.settings = settings
        gateway.generate = AsyncMock(side_effect=TransientBackendError("upstream 503"))
        generator = CellGenerator(gateway, settings)
        request = GenerationRequest(prompt="Find the website", column_key="website")
        sleep = AsyncMock()

        result = await RetryController(sleep=sleep).run(lambda: generator.try_generate(request))

        assert result.error == "Failed after 3 attempts: Failed to generate content"
        assert gateway.generate.await_count == 3
        assert sleep.await_count == 2
