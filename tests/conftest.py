"""Shared fixtures: test settings and a backend client with mocked calls."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from sheetfill.env_config import Settings
from sheetfill.models import CompletionResponse, SearchResponse


def search_reply(text: str, citations: list[str] | None = None, model: str = "gpt-4o") -> SearchResponse:
    return SearchResponse(text=text, citations=citations or [], model=model)


def completion_reply(text: str, model: str = "gpt-4o") -> CompletionResponse:
    return CompletionResponse(text=text, model=model)


@pytest.fixture
def settings() -> Settings:
    return Settings(api_key="sk-test")


@pytest.fixture
def fake_client(settings: Settings) -> MagicMock:
    client = MagicMock()
    client.settings = settings
    client.search = AsyncMock()
    client.complete = AsyncMock()
    return client
