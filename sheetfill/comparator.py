"""ResultComparator — judges whether two generated values say the same thing.

The semantic verdict comes from the backend (YES/NO); a Levenshtein
similarity bounds the reported confidence. The verdict is not guaranteed to
be symmetric: compare(a, b) and compare(b, a) are two separate model calls.
"""

from __future__ import annotations

import logging

from sheetfill.llm_client import LLMClient
from sheetfill.models import NOT_FOUND, CompareResult
from sheetfill.prompt_registry import PromptRegistry, default_registry

logger = logging.getLogger("sheetfill.comparator")


def is_blank_result(value: str | None) -> bool:
    return not value or not value.strip() or value == NOT_FOUND


def levenshtein_distance(a: str, b: str) -> int:
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                current[j - 1] + 1,
                previous[j] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def string_similarity(a: str, b: str) -> float:
    """0-100 similarity: share of the longer string not touched by edits."""
    if a == b:
        return 100.0
    if not a or not b:
        return 0.0
    longer = max(len(a), len(b))
    return (longer - levenshtein_distance(a, b)) / longer * 100


class ResultComparator:
    def __init__(
        self,
        client: LLMClient,
        model: str | None = None,
        registry: PromptRegistry | None = None,
    ):
        self.client = client
        self.model = model or client.settings.classifier_model
        self.registry = registry or default_registry()

    async def compare(self, result1: str | None, result2: str | None) -> CompareResult:
        """Raises classified backend errors; blank/sentinel inputs never reach the backend."""
        blank1, blank2 = is_blank_result(result1), is_blank_result(result2)
        if blank1 or blank2:
            both = blank1 and blank2
            return CompareResult(match=both, confidence=100 if both else 0)

        entry = self.registry.get_entry("compare_results")
        reply = await self.client.complete(
            f"Compare these two results:\n\n"
            f"Result 1: {result1}\n"
            f"Result 2: {result2}\n\n"
            f"Do they contain essentially the same information? Answer YES or NO only.",
            model=self.model,
            system_prompt=self.registry.get("compare_results"),
            max_tokens=entry.max_tokens,
            temperature=entry.temperature,
        )
        match = reply.text.strip().upper() == "YES"

        similarity = string_similarity(result1.lower(), result2.lower())
        confidence = max(80.0, similarity) if match else min(20.0, similarity)
        logger.debug(f"Compare {result1!r} vs {result2!r}: match={match} similarity={similarity:.1f}")
        return CompareResult(match=match, confidence=round(confidence))
