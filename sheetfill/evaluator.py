"""PromptEvaluator — A/B test two column prompts across both model tiers.

For every row, each prompt is run on the fast and the advanced tier. The
advanced output is the reference: a prompt's accuracy is the share of rows
where the fast tier agrees with it. Cost is the backend spend incurred while
running that prompt. Disagreement is the share of (row, prompt) pairs where
the two tiers disagree. Nothing is written back to the sheet.
"""

from __future__ import annotations

import asyncio
import logging

from sheetfill.comparator import ResultComparator
from sheetfill.errors import SheetfillError, ValidationError
from sheetfill.filler import ColumnFiller
from sheetfill.models import EvaluationRun, ModelTier, PromptScore, TierOutputs
from sheetfill.usage import UsageTracker

logger = logging.getLogger("sheetfill.evaluator")


class PromptEvaluator:
    def __init__(self, filler: ColumnFiller, comparator: ResultComparator, usage: UsageTracker):
        self.filler = filler
        self.comparator = comparator
        self.usage = usage

    async def run(self, column_id: str, prompt_a: str, prompt_b: str) -> EvaluationRun:
        if not prompt_a.strip() or not prompt_b.strip():
            raise ValidationError("Both prompts are required")
        self.filler.sheet.get_column(column_id)

        score_a = await self._score(column_id, prompt_a)
        score_b = await self._score(column_id, prompt_b)

        pairs = [*score_a.outputs, *score_b.outputs]
        disagreement = sum(not p.agree for p in pairs) / len(pairs) if pairs else 0.0

        run = EvaluationRun(
            column_id=column_id,
            prompt_a=score_a,
            prompt_b=score_b,
            disagreement=disagreement,
        )
        logger.info(
            f"Evaluation on {column_id!r}: A={score_a.accuracy:.0%} ${score_a.cost:.4f}, "
            f"B={score_b.accuracy:.0%} ${score_b.cost:.4f}, disagreement={disagreement:.0%}"
        )
        return run

    async def _score(self, column_id: str, prompt: str) -> PromptScore:
        spent_before = self.usage.total_cost
        outputs: list[TierOutputs] = []

        for row_index in range(len(self.filler.sheet.rows())):
            fast, advanced = await asyncio.gather(
                self._generate(row_index, column_id, prompt, ModelTier.FAST),
                self._generate(row_index, column_id, prompt, ModelTier.ADVANCED),
            )
            try:
                verdict = await self.comparator.compare(fast, advanced)
                agree, confidence = verdict.match, verdict.confidence
            except SheetfillError as e:
                logger.warning(f"Comparison failed for row {row_index}, counting as disagreement: {e}")
                agree, confidence = False, 0
            outputs.append(TierOutputs(
                row_index=row_index,
                fast=fast,
                advanced=advanced,
                agree=agree,
                confidence=confidence,
            ))

        accuracy = sum(o.agree for o in outputs) / len(outputs) if outputs else 0.0
        return PromptScore(
            prompt=prompt,
            outputs=outputs,
            accuracy=accuracy,
            cost=self.usage.total_cost - spent_before,
        )

    async def _generate(self, row_index: int, column_id: str, prompt: str, tier: ModelTier) -> str:
        request = self.filler.build_request(row_index, column_id, prompt=prompt)
        request.model = tier.value
        result = await self.filler.generator.try_generate(request)
        return result.value if result.success else ""
