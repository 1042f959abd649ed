"""Data models for sheetfill — spreadsheet state, generation requests/results,
backend response shapes and evaluation runs. All Pydantic v2 validated.
"""

from __future__ import annotations

import enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

NOT_FOUND = "Not Found"


# ============================================================
# Enums
# ============================================================

class ModelTier(str, enum.Enum):
    FAST = "fast"
    ADVANCED = "advanced"


class Complexity(str, enum.Enum):
    """Ordered difficulty tiers for a task instruction."""
    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"


# ============================================================
# Spreadsheet state
# ============================================================

class Cell(BaseModel):
    value: str = ""
    is_generating: bool = False
    source: str | None = None
    error: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.value or not self.value.strip()


class Column(BaseModel):
    id: str
    name: str = "New Column"
    prompt: str | None = None
    model: ModelTier = ModelTier.FAST

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_ai_column(self) -> bool:
        return bool(self.prompt and self.prompt.strip())


Row = dict[str, Cell]


# ============================================================
# Generation (transient)
# ============================================================

class GenerationRequest(BaseModel):
    """One cell-generation invocation. Not persisted."""
    model_config = ConfigDict(populate_by_name=True)

    prompt: str | None = None
    context: dict[str, str] = Field(default_factory=dict)
    column_key: str | None = Field(default=None, alias="columnKey")
    row_data: dict[str, str] = Field(default_factory=dict, alias="rowData")
    model: str | None = None


class GenerationResult(BaseModel):
    value: str = ""
    source: str = ""
    success: bool = False
    error: str | None = None
    # True when another attempt cannot succeed.
    terminal: bool = Field(default=False, exclude=True)


# ============================================================
# Backend response shapes (tagged union)
# ============================================================

class SearchResponse(BaseModel):
    """Tool-augmented (web search) output: final message text plus citation annotations."""
    kind: Literal["search"] = "search"
    text: str = ""
    citations: list[str] = Field(default_factory=list)
    model: str = ""


class CompletionResponse(BaseModel):
    """Plain chat completion output, text only."""
    kind: Literal["completion"] = "completion"
    text: str = ""
    model: str = ""


BackendResponse = Annotated[Union[SearchResponse, CompletionResponse], Field(discriminator="kind")]


class SanitizedText(BaseModel):
    clean_text: str = NOT_FOUND
    extracted_urls: list[str] = Field(default_factory=list)


class GatewayResult(BaseModel):
    """Normalized outcome of one gateway attempt."""
    value: str = NOT_FOUND
    sources: list[str] = Field(default_factory=list)
    model_used: str = ""
    used_search: bool = False


# ============================================================
# Comparison / classification
# ============================================================

class CompareResult(BaseModel):
    match: bool = False
    confidence: int = Field(default=0, ge=0, le=100)


# ============================================================
# A/B prompt evaluation (transient)
# ============================================================

class TierOutputs(BaseModel):
    """Outputs of one prompt on one row, across both model tiers."""
    row_index: int
    fast: str = ""
    advanced: str = ""
    agree: bool = False
    confidence: int = 0


class PromptScore(BaseModel):
    prompt: str
    outputs: list[TierOutputs] = Field(default_factory=list)
    accuracy: float = 0.0
    cost: float = 0.0


class EvaluationRun(BaseModel):
    """A/B comparison of two column prompts over every row. Discarded after use."""
    column_id: str
    prompt_a: PromptScore
    prompt_b: PromptScore
    disagreement: float = 0.0

    @property
    def winner(self) -> str | None:
        """'a' or 'b' by accuracy, then by lower cost; None on a full tie."""
        a, b = self.prompt_a, self.prompt_b
        if a.accuracy != b.accuracy:
            return "a" if a.accuracy > b.accuracy else "b"
        if a.cost != b.cost:
            return "a" if a.cost < b.cost else "b"
        return None
