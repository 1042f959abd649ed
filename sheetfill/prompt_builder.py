"""Prompt builder — merges a column instruction with row context into one directive."""

from __future__ import annotations

from typing import Mapping

from sheetfill.errors import ValidationError
from sheetfill.models import NOT_FOUND, Cell, Column
from sheetfill.prompt_registry import PromptRegistry, default_registry

NO_CONTEXT = "No additional context provided"

# Readable names for the column ids of the starter sheet.
READABLE_COLUMN_NAMES: dict[str, str] = {
    "company": "Company Name",
    "website": "Website",
    "email": "Email",
    "phone": "Phone",
    "source": "Source",
    "competitive": "Competitive Analysis",
    "risk": "Risk Assessment",
}


def readable_column_name(column_id: str, columns: Mapping[str, Column] | None = None) -> str:
    if columns and column_id in columns and columns[column_id].name:
        return columns[column_id].name
    return READABLE_COLUMN_NAMES.get(column_id, column_id)


def extract_context(
    row: Mapping[str, Cell],
    exclude: str | None = None,
    columns: Mapping[str, Column] | None = None,
) -> dict[str, str]:
    """Sibling cell values keyed by readable column name; target column and blanks excluded."""
    context: dict[str, str] = {}
    for column_id, cell in row.items():
        if column_id == exclude or cell is None or cell.is_empty:
            continue
        context[readable_column_name(column_id, columns)] = cell.value
    return context


def format_context(context: Mapping[str, str] | None) -> str:
    """Render context as `key: value` lines, skipping empty values."""
    if not context:
        return ""
    return "\n".join(
        f"{key}: {value}"
        for key, value in context.items()
        if value and str(value).strip()
    )


def build_cell_prompt(
    instruction: str | None,
    context: Mapping[str, str] | None = None,
    web_search: bool = True,
    registry: PromptRegistry | None = None,
) -> str:
    """Build the single directive string sent to the model for one cell.

    Args:
        instruction: The column's task text, appended verbatim.
        context: Readable field name -> value for the other cells in the row.
        web_search: Whether the model tier can use the search tool; when it
            cannot, the "search is mandatory" constraints are left out.

    Raises:
        ValidationError: If the instruction is missing or blank.
    """
    if instruction is None or not instruction.strip():
        raise ValidationError("Prompt is required")

    registry = registry or default_registry()
    return registry.get(
        "cell_search" if web_search else "cell_plain",
        context_block=format_context(context) or NO_CONTEXT,
        task=instruction,
        not_found=NOT_FOUND,
    )
