"""ColumnFiller — drives generation for single cells and whole AI columns.

Column fills run in fixed-size batches of concurrent invocations with a
pause between batches. Batches are issued in row order; completion order
inside a batch is not guaranteed. Each invocation writes only its own cell.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from sheetfill.generator import CellGenerator
from sheetfill.models import Cell, GenerationRequest, GenerationResult
from sheetfill.prompt_builder import extract_context
from sheetfill.retry import RetryController
from sheetfill.sheet import SheetRepository

logger = logging.getLogger("sheetfill.filler")


class ColumnFiller:
    def __init__(
        self,
        sheet: SheetRepository,
        generator: CellGenerator,
        retry: RetryController | None = None,
        batch_size: int | None = None,
        batch_delay: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        settings = generator.settings
        self.sheet = sheet
        self.generator = generator
        self.retry = retry or RetryController(
            max_retries=settings.max_retries,
            attempt_timeout=settings.attempt_timeout,
        )
        self.batch_size = max(1, batch_size or settings.batch_size)
        self.batch_delay = settings.batch_delay if batch_delay is None else batch_delay
        self._sleep = sleep

    def build_request(self, row_index: int, column_id: str, prompt: str | None = None) -> GenerationRequest:
        column = self.sheet.get_column(column_id)
        row = self.sheet.rows()[row_index]
        return GenerationRequest(
            prompt=prompt if prompt is not None else (column.prompt or ""),
            context=extract_context(row, exclude=column_id, columns=self.sheet.columns_by_id()),
            column_key=column_id,
            row_data={key: cell.value for key, cell in row.items()},
            model=column.model.value,
        )

    async def generate_cell(self, row_index: int, column_id: str) -> GenerationResult | None:
        """Generate one cell. Returns None when the column has no prompt."""
        column = self.sheet.get_column(column_id)
        if not column.is_ai_column:
            return None

        request = self.build_request(row_index, column_id)
        self.sheet.set_cell(row_index, column_id, Cell(value="", is_generating=True))

        result = await self.retry.run(lambda: self.generator.try_generate(request))

        if result.success:
            cell = Cell(value=result.value, source=result.source or None)
        else:
            cell = Cell(value="", error=result.error)
        self.sheet.set_cell(row_index, column_id, cell)
        return result

    async def fill_column(self, column_id: str) -> dict[int, GenerationResult]:
        """Fill every empty cell of an AI column. Returns results keyed by row index."""
        column = self.sheet.get_column(column_id)
        if not column.is_ai_column:
            return {}

        pending = self.sheet.empty_rows(column_id)
        logger.info(f"Filling {len(pending)} empty cells in column {column.name!r}")

        results: dict[int, GenerationResult] = {}
        for start in range(0, len(pending), self.batch_size):
            batch = pending[start:start + self.batch_size]
            outcomes = await asyncio.gather(*(self.generate_cell(i, column_id) for i in batch))
            for row_index, outcome in zip(batch, outcomes):
                if outcome is not None:
                    results[row_index] = outcome
            if start + self.batch_size < len(pending):
                await self._sleep(self.batch_delay)
        return results
