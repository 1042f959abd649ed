"""RetryController — bounded retries with exponential backoff.

    ATTEMPT(n) ─▶ SUCCESS            return the result
               ─▶ TERMINAL_FAILURE   stop now (invalid credential, exhausted quota,
                                     missing configuration, malformed request)
               ─▶ RETRYABLE_FAILURE  sleep base_delay * 2**n, then ATTEMPT(n + 1)

After max_retries + 1 attempts the controller gives up with
"Failed after N attempts: <last error>".
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from sheetfill.errors import (
    AuthError,
    ConfigurationError,
    QuotaError,
    SheetfillError,
    ValidationError,
    is_terminal_message,
)
from sheetfill.models import GenerationResult

logger = logging.getLogger("sheetfill.retry")

_TERMINAL_ERRORS = (AuthError, QuotaError, ConfigurationError, ValidationError)


class AttemptOutcome(str, enum.Enum):
    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable_failure"
    TERMINAL_FAILURE = "terminal_failure"


def classify_failure(error: str | BaseException | None) -> AttemptOutcome:
    if isinstance(error, _TERMINAL_ERRORS):
        return AttemptOutcome.TERMINAL_FAILURE
    message = str(error) if error is not None else ""
    if is_terminal_message(message):
        return AttemptOutcome.TERMINAL_FAILURE
    return AttemptOutcome.RETRYABLE_FAILURE


@dataclass
class RetryController:
    """Wraps a generation attempt with retries.

    Usage:
        controller = RetryController(max_retries=2)
        result = await controller.run(lambda: generator.try_generate(request))
    """
    max_retries: int = 2
    base_delay: float = 1.0
    attempt_timeout: float | None = None
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep)

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def backoff(self, attempt_index: int) -> float:
        return self.base_delay * (2 ** attempt_index)

    async def run(self, attempt: Callable[[], Awaitable[GenerationResult]]) -> GenerationResult:
        last_error = "Unknown error"

        for n in range(self.max_attempts):
            try:
                result = await self._attempt(attempt)
            except asyncio.TimeoutError:
                last_error = f"Timed out after {self.attempt_timeout}s"
                outcome = AttemptOutcome.RETRYABLE_FAILURE
            except SheetfillError as e:
                last_error = str(e)
                outcome = classify_failure(e)
            else:
                if result.success:
                    return result
                last_error = result.error or "Unknown error"
                if result.terminal:
                    outcome = AttemptOutcome.TERMINAL_FAILURE
                else:
                    outcome = classify_failure(last_error)

            if outcome is AttemptOutcome.TERMINAL_FAILURE:
                logger.warning(f"Attempt {n + 1} failed terminally: {last_error}")
                return GenerationResult(value="", source="", success=False, error=last_error)

            logger.warning(f"Attempt {n + 1}/{self.max_attempts} failed: {last_error}")
            if n < self.max_attempts - 1:
                await self.sleep(self.backoff(n))

        return GenerationResult(
            value="",
            source="",
            success=False,
            error=f"Failed after {self.max_attempts} attempts: {last_error}",
        )

    async def _attempt(self, attempt: Callable[[], Awaitable[GenerationResult]]) -> GenerationResult:
        if self.attempt_timeout is None:
            return await attempt()
        return await asyncio.wait_for(attempt(), timeout=self.attempt_timeout)
