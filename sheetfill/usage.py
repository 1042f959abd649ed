"""Usage tracking — records token counts and cost of every backend call.

Costs come from LiteLLM's pricing table (litellm.completion_cost). Totals
live in memory for the lifetime of the process; the evaluator reads them to
price each prompt variant.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

logger = logging.getLogger("sheetfill.usage")


@dataclass
class UsageEntry:
    """Single API call cost record."""
    timestamp: str
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    cost: float = 0.0


@dataclass
class UsageTracker:
    """Accumulates LLM API spend.

    Usage:
        tracker = UsageTracker()
        tracker.record(model="gpt-4o", cost=0.05, prompt_tokens=100, completion_tokens=50)
        tracker.total_cost   # 0.05
    """
    _entries: list[UsageEntry] = field(default_factory=list)
    _total_cost: float = 0.0

    def record(
        self,
        model: str,
        cost: float = 0.0,
        prompt_tokens: int = 0,
        completion_tokens: int = 0,
    ) -> UsageEntry:
        entry = UsageEntry(
            timestamp=datetime.now().isoformat(),
            model=model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            cost=cost,
        )
        self._entries.append(entry)
        self._total_cost += cost
        logger.debug(f"Usage record: {model} ${cost:.6f} (total: ${self._total_cost:.6f})")
        return entry

    def record_from_response(self, response: Any, model: str = "") -> UsageEntry:
        """Extract token usage and cost from a LiteLLM response and record it.

        Handles both chat-completion usage (prompt_tokens/completion_tokens)
        and Responses API usage (input_tokens/output_tokens).
        """
        try:
            import litellm
            cost = float(litellm.completion_cost(completion_response=response) or 0.0)
        except Exception as e:
            logger.debug(f"No cost available for {model or 'response'}: {e}")
            cost = 0.0

        usage = response.get("usage") if isinstance(response, dict) else getattr(response, "usage", None)
        prompt_tokens = _int_attr(usage, "prompt_tokens", "input_tokens")
        completion_tokens = _int_attr(usage, "completion_tokens", "output_tokens")
        model_used = model or getattr(response, "model", None) or "unknown"

        return self.record(
            model=str(model_used),
            cost=cost,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
        )

    @property
    def total_cost(self) -> float:
        return self._total_cost

    @property
    def entries(self) -> list[UsageEntry]:
        return list(self._entries)

    def summary(self) -> dict[str, Any]:
        """Return usage summary as dict, grouped by model."""
        by_model: dict[str, float] = {}
        for e in self._entries:
            by_model[e.model] = by_model.get(e.model, 0.0) + e.cost
        return {
            "total_cost": self._total_cost,
            "requests": len(self._entries),
            "prompt_tokens": sum(e.prompt_tokens for e in self._entries),
            "completion_tokens": sum(e.completion_tokens for e in self._entries),
            "by_model": by_model,
        }

    def reset(self) -> None:
        self._entries.clear()
        self._total_cost = 0.0


def _int_attr(obj: Any, *names: str) -> int:
    if obj is None:
        return 0
    for name in names:
        value = obj.get(name) if isinstance(obj, dict) else getattr(obj, name, None)
        if isinstance(value, int):
            return value
    return 0
