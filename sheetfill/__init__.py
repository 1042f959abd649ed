"""sheetfill — fill AI spreadsheet columns with web-searched LLM answers and their sources.

Usage:
    from sheetfill import CellGenerator, GenerationRequest, LLMClient, ModelGateway, get_settings

    settings = get_settings()
    generator = CellGenerator(ModelGateway(LLMClient(settings)))
    result = await generator.generate(GenerationRequest(
        prompt="Find the official website",
        context={"Company Name": "Acme Corp"},
        column_key="website",
    ))
    print(result.value, result.source)
"""

__version__ = "0.1.0"

from sheetfill.classifier import ComplexityClassifier, tier_for_complexity
from sheetfill.comparator import ResultComparator
from sheetfill.env_config import Settings, get_settings
from sheetfill.errors import (
    AuthError,
    ConfigurationError,
    ParseAnomaly,
    QuotaError,
    SheetfillError,
    TransientBackendError,
    ValidationError,
)
from sheetfill.evaluator import PromptEvaluator
from sheetfill.filler import ColumnFiller
from sheetfill.gateway import ModelGateway
from sheetfill.generator import CellGenerator
from sheetfill.llm_client import LLMClient
from sheetfill.models import (
    NOT_FOUND,
    Cell,
    Column,
    CompareResult,
    Complexity,
    EvaluationRun,
    GatewayResult,
    GenerationRequest,
    GenerationResult,
    ModelTier,
)
from sheetfill.prompt_builder import build_cell_prompt, extract_context
from sheetfill.prompt_registry import PromptRegistry
from sheetfill.retry import RetryController
from sheetfill.sanitizer import sanitize_response
from sheetfill.sheet import InMemorySheetRepository, SheetRepository, starter_sheet
from sheetfill.usage import UsageTracker

__all__ = [
    # Pipeline
    "build_cell_prompt",
    "extract_context",
    "sanitize_response",
    "LLMClient",
    "ModelGateway",
    "CellGenerator",
    "RetryController",
    "ComplexityClassifier",
    "tier_for_complexity",
    "ResultComparator",
    "PromptEvaluator",
    "ColumnFiller",
    # State
    "SheetRepository",
    "InMemorySheetRepository",
    "starter_sheet",
    # Config / prompts / usage
    "Settings",
    "get_settings",
    "PromptRegistry",
    "UsageTracker",
    # Models
    "NOT_FOUND",
    "Cell",
    "Column",
    "CompareResult",
    "Complexity",
    "EvaluationRun",
    "GatewayResult",
    "GenerationRequest",
    "GenerationResult",
    "ModelTier",
    # Errors
    "SheetfillError",
    "ConfigurationError",
    "AuthError",
    "QuotaError",
    "ValidationError",
    "TransientBackendError",
    "ParseAnomaly",
]
