"""ComplexityClassifier — picks a cost-appropriate model tier for a column prompt."""

from __future__ import annotations

import logging

from sheetfill.errors import SheetfillError, ValidationError
from sheetfill.llm_client import LLMClient
from sheetfill.models import Complexity, ModelTier
from sheetfill.prompt_registry import PromptRegistry, default_registry

logger = logging.getLogger("sheetfill.classifier")


def tier_for_complexity(complexity: Complexity) -> ModelTier:
    """{simple, medium} -> fast tier, {complex} -> advanced tier."""
    return ModelTier.ADVANCED if complexity is Complexity.COMPLEX else ModelTier.FAST


def parse_complexity(answer: str | None) -> Complexity:
    """Map a single-word model answer onto the taxonomy; anything else is medium."""
    word = (answer or "").strip().strip(".\"'").lower()
    try:
        return Complexity(word)
    except ValueError:
        logger.warning(f"Invalid complexity response: {answer!r}")
        return Complexity.MEDIUM


class ComplexityClassifier:
    def __init__(
        self,
        client: LLMClient,
        model: str | None = None,
        registry: PromptRegistry | None = None,
    ):
        self.client = client
        self.model = model or client.settings.classifier_model
        self.registry = registry or default_registry()

    async def assess_strict(self, instruction: str) -> Complexity:
        """Classify, letting classified backend errors propagate.

        Raises:
            ValidationError: empty instruction.
            AuthError, QuotaError, TransientBackendError: backend failures.
        """
        if not instruction or not instruction.strip():
            raise ValidationError("Prompt is required")

        entry = self.registry.get_entry("assess_complexity")
        reply = await self.client.complete(
            f'Analyze this prompt: "{instruction}"',
            model=self.model,
            system_prompt=self.registry.get("assess_complexity"),
            max_tokens=entry.max_tokens,
            temperature=entry.temperature,
        )
        return parse_complexity(reply.text)

    async def assess(self, instruction: str) -> Complexity:
        """Classify; any backend failure degrades to medium."""
        try:
            return await self.assess_strict(instruction)
        except ValidationError:
            raise
        except SheetfillError as e:
            logger.warning(f"Complexity assessment failed, defaulting to medium: {e}")
            return Complexity.MEDIUM

    async def suggest_tier(self, instruction: str) -> ModelTier:
        return tier_for_complexity(await self.assess(instruction))
