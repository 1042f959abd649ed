"""Prompt templates for every backend call, read from sheetfill/prompts.yaml.

Each entry carries a Jinja2 system template plus the sampling settings the
call should use. Rendering is strict: a placeholder without a value is an
error, never an empty string in a prompt sent to the model.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml
from jinja2 import Environment, StrictUndefined, TemplateSyntaxError, UndefinedError, meta

logger = logging.getLogger("sheetfill.prompt_registry")

_BUNDLED_PROMPTS = Path(__file__).parent / "prompts.yaml"

# Prompt name -> placeholders the pipeline passes when rendering it.
REQUIRED_PROMPTS: Mapping[str, frozenset[str]] = {
    "cell_search": frozenset({"context_block", "task", "not_found"}),
    "cell_plain": frozenset({"context_block", "task", "not_found"}),
    "cite_sources": frozenset({"task", "answer"}),
    "assess_complexity": frozenset(),
    "compare_results": frozenset(),
}


class PromptNotFoundError(KeyError):
    """No prompt with that name in prompts.yaml."""


class PromptRenderError(ValueError):
    """Template is malformed or a placeholder had no value."""


@dataclass(frozen=True)
class PromptEntry:
    name: str
    system_template: str
    max_tokens: int = 512
    temperature: float = 0.1


def parse_prompts(raw: Mapping[str, Any] | None) -> dict[str, PromptEntry]:
    """Build entries from the `prompts:` mapping of a loaded YAML document.

    An entry is either a bare template string or a mapping with `system`,
    `max_tokens` and `temperature` keys.
    """
    entries: dict[str, PromptEntry] = {}
    for name, data in ((raw or {}).get("prompts") or {}).items():
        if isinstance(data, str):
            entries[name] = PromptEntry(name, data)
        elif isinstance(data, dict):
            entries[name] = PromptEntry(
                name,
                data.get("system", ""),
                max_tokens=int(data.get("max_tokens", 512)),
                temperature=float(data.get("temperature", 0.1)),
            )
        else:
            logger.warning(f"Skipping prompt {name!r}: expected a string or mapping, got {type(data).__name__}")
    return entries


class PromptRegistry:
    """Read-only view over a prompts file, loaded on first use.

    Usage:
        registry = PromptRegistry()
        text = registry.get("cite_sources", task="Find CEO", answer="Jane Doe")
    """

    def __init__(self, prompts_path: Path | str | None = None):
        self.path = Path(prompts_path) if prompts_path else _BUNDLED_PROMPTS
        self._env = Environment(undefined=StrictUndefined)
        self._entries: dict[str, PromptEntry] | None = None

    @property
    def entries(self) -> dict[str, PromptEntry]:
        if self._entries is None:
            self._entries = self._read()
        return self._entries

    def _read(self) -> dict[str, PromptEntry]:
        if not self.path.exists():
            logger.warning(f"Prompts file not found: {self.path}")
            return {}
        with open(self.path, encoding="utf-8") as f:
            entries = parse_prompts(yaml.safe_load(f))
        logger.debug(f"Loaded {len(entries)} prompts from {self.path}")
        return entries

    def names(self) -> list[str]:
        return sorted(self.entries)

    def get_entry(self, name: str) -> PromptEntry:
        try:
            return self.entries[name]
        except KeyError:
            raise PromptNotFoundError(f"Prompt '{name}' not found in {self.path.name}. Available: {self.names()}") from None

    def get(self, name: str, **variables: Any) -> str:
        """Render prompt `name` with `variables`.

        Raises:
            PromptNotFoundError: unknown prompt name.
            PromptRenderError: missing variable or broken template.
        """
        template_text = self.get_entry(name).system_template
        try:
            return self._env.from_string(template_text).render(**variables)
        except UndefinedError as e:
            raise PromptRenderError(f"Missing template variable in '{name}': {e}") from e
        except TemplateSyntaxError as e:
            raise PromptRenderError(f"Invalid template syntax in '{name}': {e}") from e

    def validate(self) -> list[str]:
        """Problems that would break a fill run; an empty list means the file is usable."""
        problems: list[str] = []
        missing = sorted(set(REQUIRED_PROMPTS) - set(self.entries))
        if missing:
            problems.append(f"Missing required prompts: {missing}")

        for name, entry in self.entries.items():
            if not entry.system_template.strip():
                problems.append(f"Prompt '{name}' has empty system template")
                continue
            try:
                used = meta.find_undeclared_variables(self._env.parse(entry.system_template))
            except TemplateSyntaxError as e:
                problems.append(f"Prompt '{name}' has invalid Jinja2 syntax: {e}")
                continue
            unknown = used - REQUIRED_PROMPTS.get(name, used)
            if unknown:
                problems.append(f"Prompt '{name}' uses placeholders never supplied: {sorted(unknown)}")
        return problems


@lru_cache(maxsize=1)
def default_registry() -> PromptRegistry:
    """Shared registry over the bundled prompts.yaml."""
    return PromptRegistry()
