"""Environment configuration — .env loading and model tier resolution.

Reads the OpenAI credential LiteLLM expects (OPENAI_API_KEY) plus
sheetfill-specific vars (SHEETFILL_FAST_MODEL, SHEETFILL_ADVANCED_MODEL, ...).
Settings are resolved once at process start and are immutable afterwards.

Usage:
    from sheetfill.env_config import get_settings

    settings = get_settings()
    print(settings.resolve_model("advanced"))   # "gpt-4o"
    print(settings.supports_search("o3"))       # False
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from sheetfill.models import ModelTier

logger = logging.getLogger("sheetfill.env_config")

DEFAULT_SEARCH_MODELS = ("gpt-4o", "gpt-4o-mini")


@dataclass(frozen=True)
class Settings:
    """Resolved, immutable runtime configuration."""
    # Auth
    api_key: str | None = None

    # Models
    fast_model: str = "gpt-4o-mini"
    advanced_model: str = "gpt-4o"
    fallback_model: str = "gpt-4o"
    classifier_model: str = "gpt-3.5-turbo"
    search_models: tuple[str, ...] = DEFAULT_SEARCH_MODELS

    # Generation
    temperature: float = 0.1
    max_tokens: int = 500
    timeout: float = 60.0
    max_retries: int = 2
    attempt_timeout: float | None = None
    max_sources: int = 3

    # Column fill throttle
    batch_size: int = 3
    batch_delay: float = 1.0

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "info"
    log_file: str | None = None

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)

    def resolve_model(self, name: str | ModelTier | None) -> str:
        """Map a tier name ("fast"/"advanced") or a raw model id to a model id.

        None resolves to the advanced tier, which is also the default web-search model.
        """
        if name is None or name == "":
            return self.advanced_model
        value = name.value if isinstance(name, ModelTier) else str(name)
        if value == ModelTier.FAST.value:
            return self.fast_model
        if value == ModelTier.ADVANCED.value:
            return self.advanced_model
        return value

    def supports_search(self, model: str) -> bool:
        """Whether the model accepts the web-search tool."""
        return model in self.search_models


def load_dotenv_if_available(path: str | Path | None = None) -> None:
    """Load .env file if it exists. Existing environment variables always win."""
    candidates = [path] if path else [".env", Path.home() / ".sheetfill" / ".env"]

    for candidate in candidates:
        if candidate and Path(candidate).is_file():
            logger.debug(f"Loading .env from {candidate}")
            with open(candidate) as f:
                for line in f:
                    line = line.strip()
                    if not line or line.startswith("#") or "=" not in line:
                        continue
                    key, _, value = line.partition("=")
                    key = key.strip()
                    value = value.strip().strip("'\"")
                    if key and value and key not in os.environ:
                        os.environ[key] = value
            return


def _csv(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


def get_settings(dotenv_path: str | Path | None = None) -> Settings:
    """Read all config from environment variables.

    Priority: CLI args > env vars > .env file > defaults
    """
    load_dotenv_if_available(dotenv_path)

    search_str = os.getenv("SHEETFILL_SEARCH_MODELS", "")
    search_models = _csv(search_str) if search_str else DEFAULT_SEARCH_MODELS
    attempt_str = os.getenv("SHEETFILL_ATTEMPT_TIMEOUT", "")

    return Settings(
        api_key=os.getenv("OPENAI_API_KEY", None) or None,
        fast_model=os.getenv("SHEETFILL_FAST_MODEL", "gpt-4o-mini"),
        advanced_model=os.getenv("SHEETFILL_ADVANCED_MODEL", "gpt-4o"),
        fallback_model=os.getenv("SHEETFILL_FALLBACK_MODEL", "gpt-4o"),
        classifier_model=os.getenv("SHEETFILL_CLASSIFIER_MODEL", "gpt-3.5-turbo"),
        search_models=search_models,
        temperature=float(os.getenv("SHEETFILL_TEMPERATURE", "0.1")),
        max_tokens=int(os.getenv("SHEETFILL_MAX_TOKENS", "500")),
        timeout=float(os.getenv("SHEETFILL_TIMEOUT", "60")),
        max_retries=int(os.getenv("SHEETFILL_MAX_RETRIES", "2")),
        attempt_timeout=float(attempt_str) if attempt_str else None,
        batch_size=int(os.getenv("SHEETFILL_BATCH_SIZE", "3")),
        batch_delay=float(os.getenv("SHEETFILL_BATCH_DELAY", "1.0")),
        host=os.getenv("SHEETFILL_HOST", "0.0.0.0"),
        port=int(os.getenv("SHEETFILL_PORT", "8080")),
        log_level=os.getenv("SHEETFILL_LOG_LEVEL", "info"),
        log_file=os.getenv("SHEETFILL_LOG_FILE", None) or None,
    )
