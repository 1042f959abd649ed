"""Spreadsheet state — columns, rows and cells behind a repository interface.

Only an in-memory implementation ships; state is lost when the process exits.
Every row always holds a cell for every column.
"""

from __future__ import annotations

import abc
import logging
import time

from sheetfill.errors import ValidationError
from sheetfill.models import Cell, Column, ModelTier, Row

logger = logging.getLogger("sheetfill.sheet")


class SheetRepository(abc.ABC):
    """Storage seam for spreadsheet state."""

    @abc.abstractmethod
    def columns(self) -> list[Column]: ...

    @abc.abstractmethod
    def rows(self) -> list[Row]: ...

    @abc.abstractmethod
    def add_column(self, name: str = "New Column", prompt: str | None = None,
                   model: ModelTier = ModelTier.FAST, column_id: str | None = None) -> Column: ...

    @abc.abstractmethod
    def update_column(self, column_id: str, *, name: str | None = None,
                      prompt: str | None = None, model: ModelTier | None = None) -> Column: ...

    @abc.abstractmethod
    def delete_column(self, column_id: str) -> None: ...

    @abc.abstractmethod
    def add_row(self, values: dict[str, str] | None = None) -> int: ...

    @abc.abstractmethod
    def get_cell(self, row_index: int, column_id: str) -> Cell: ...

    @abc.abstractmethod
    def set_cell(self, row_index: int, column_id: str, cell: Cell) -> None: ...

    def get_column(self, column_id: str) -> Column:
        for column in self.columns():
            if column.id == column_id:
                return column
        raise ValidationError(f"Unknown column: {column_id}")

    def columns_by_id(self) -> dict[str, Column]:
        return {column.id: column for column in self.columns()}

    def clear_cell(self, row_index: int, column_id: str) -> None:
        self.set_cell(row_index, column_id, Cell())

    def empty_rows(self, column_id: str) -> list[int]:
        """Row indices whose cell in `column_id` is blank, in row order."""
        return [
            index for index, row in enumerate(self.rows())
            if row.get(column_id) is None or row[column_id].is_empty
        ]


class InMemorySheetRepository(SheetRepository):
    def __init__(self, columns: list[Column] | None = None, rows: list[Row] | None = None):
        self._columns: list[Column] = list(columns or [])
        self._rows: list[Row] = []
        for row in rows or []:
            self._rows.append({c.id: row.get(c.id, Cell()) for c in self._columns})

    def columns(self) -> list[Column]:
        return list(self._columns)

    def rows(self) -> list[Row]:
        return self._rows

    def add_column(self, name: str = "New Column", prompt: str | None = None,
                   model: ModelTier = ModelTier.FAST, column_id: str | None = None) -> Column:
        column = Column(
            id=column_id or f"col_{time.time_ns()}",
            name=name,
            prompt=prompt,
            model=model,
        )
        if any(c.id == column.id for c in self._columns):
            raise ValidationError(f"Column already exists: {column.id}")
        self._columns.append(column)
        for row in self._rows:
            row[column.id] = Cell()
        return column

    def update_column(self, column_id: str, *, name: str | None = None,
                      prompt: str | None = None, model: ModelTier | None = None) -> Column:
        column = self.get_column(column_id)
        updates: dict[str, object] = {}
        if name is not None:
            updates["name"] = name
        if prompt is not None:
            updates["prompt"] = prompt
        if model is not None:
            updates["model"] = model
        updated = column.model_copy(update=updates)
        self._columns = [updated if c.id == column_id else c for c in self._columns]
        return updated

    def delete_column(self, column_id: str) -> None:
        self.get_column(column_id)
        if len(self._columns) == 1:
            raise ValidationError("Cannot delete the last column")
        self._columns = [c for c in self._columns if c.id != column_id]
        for row in self._rows:
            row.pop(column_id, None)

    def add_row(self, values: dict[str, str] | None = None) -> int:
        values = values or {}
        self._rows.append({c.id: Cell(value=values.get(c.id, "")) for c in self._columns})
        return len(self._rows) - 1

    def get_cell(self, row_index: int, column_id: str) -> Cell:
        return self._row(row_index).get(column_id) or Cell()

    def set_cell(self, row_index: int, column_id: str, cell: Cell) -> None:
        self.get_column(column_id)
        self._row(row_index)[column_id] = cell

    def _row(self, row_index: int) -> Row:
        if not 0 <= row_index < len(self._rows):
            raise ValidationError(f"Row {row_index} out of range")
        return self._rows[row_index]


def starter_sheet() -> InMemorySheetRepository:
    """A small company-research sheet to start from."""
    repo = InMemorySheetRepository([
        Column(id="company", name="Company Name"),
        Column(id="website", name="Website", prompt="Find the official website URL"),
        Column(id="email", name="Email", prompt="Find the main contact or careers email address"),
        Column(id="phone", name="Phone", prompt="Find the main phone number"),
        Column(id="source", name="Source"),
    ])
    for company in ("Insomniac Games", "FromSoftware", "Bungie"):
        repo.add_row({"company": company})
    return repo
