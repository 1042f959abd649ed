"""Tests for the sheetfill API server — status codes and payloads of every endpoint."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from sheetfill.env_config import Settings
from sheetfill.server import create_app


def _search_payload(text: str, urls: list[str] | None = None) -> dict:
    return {
        "output": [{
            "type": "message",
            "content": [{
                "type": "output_text",
                "text": text,
                "annotations": [{"type": "url_citation", "url": u} for u in urls or []],
            }],
        }],
    }


def _mock_litellm_response(content: str) -> MagicMock:
    resp = MagicMock()
    resp.choices = [MagicMock()]
    resp.choices[0].message.content = content
    return resp


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app(Settings(api_key="sk-test")))


@pytest.fixture
def unconfigured() -> TestClient:
    return TestClient(create_app(Settings(api_key=None)))


ACME_REQUEST = {
    "prompt": "Find the official website",
    "context": {"Company Name": "Acme Corp"},
    "columnKey": "website",
    "rowData": {"company": "Acme Corp"},
}


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["version"] == "0.1.0"
        assert data["configured"] is True

    def test_health_unconfigured(self, unconfigured):
        assert unconfigured.get("/health").json()["configured"] is False


class TestFillCell:
    def test_acme_website(self, client):
        with patch("litellm.aresponses", new=AsyncMock(return_value=_search_payload(
            "Acme's site is [here](https://acme.com) (Source: https://acme.com)"
        ))) as search, patch("litellm.acompletion", new=AsyncMock()) as complete:
            resp = client.post("/fill-cell", json=ACME_REQUEST)

        assert resp.status_code == 200
        assert resp.json() == {"value": "Acme's site is", "source": "https://acme.com", "success": True}
        assert search.call_args.kwargs["model"] == "gpt-4o"
        assert "Company Name: Acme Corp" in search.call_args.kwargs["input"]
        complete.assert_not_called()

    def test_fast_tier(self, client):
        with patch("litellm.aresponses", new=AsyncMock(return_value=_search_payload("acme.com", ["https://acme.com"]))) as search:
            resp = client.post("/fill-cell", json={**ACME_REQUEST, "model": "fast"})

        assert resp.status_code == 200
        assert search.call_args.kwargs["model"] == "gpt-4o-mini"

    def test_invalid_api_key(self, client):
        with patch("litellm.aresponses", new=AsyncMock(side_effect=Exception("Invalid API key provided"))) as search, \
             patch("litellm.acompletion", new=AsyncMock()) as complete:
            resp = client.post("/fill-cell", json=ACME_REQUEST)

        assert resp.status_code == 401
        assert resp.json()["success"] is False
        assert resp.json()["error"] == "Invalid API key"
        assert search.await_count == 1
        complete.assert_not_called()

    def test_quota_exceeded(self, client):
        with patch("litellm.aresponses", new=AsyncMock(side_effect=Exception("You exceeded your current quota"))):
            resp = client.post("/fill-cell", json=ACME_REQUEST)

        assert resp.status_code == 429
        assert resp.json()["error"] == "API quota exceeded"

    def test_transient_failure(self, client):
        with patch("litellm.aresponses", new=AsyncMock(side_effect=Exception("503 upstream"))), \
             patch("litellm.acompletion", new=AsyncMock(side_effect=Exception("503 upstream"))) as complete:
            resp = client.post("/fill-cell", json=ACME_REQUEST)

        assert resp.status_code == 500
        assert resp.json()["error"] == "Failed to generate content"
        assert complete.await_count == 1

    def test_search_failure_falls_back_to_completion(self, client):
        with patch("litellm.aresponses", new=AsyncMock(side_effect=Exception("tool unsupported"))), \
             patch("litellm.acompletion", new=AsyncMock(return_value=_mock_litellm_response("https://acme.com"))):
            resp = client.post("/fill-cell", json={**ACME_REQUEST, "context": {}})

        assert resp.status_code == 200
        data = resp.json()
        assert data["value"] == "Not Found"
        assert data["source"] == "https://acme.com"

    @pytest.mark.parametrize("body", [
        {"columnKey": "website"},
        {"prompt": "Find the official website"},
        {"prompt": "   ", "columnKey": "website"},
        {"prompt": None, "columnKey": "website"},
        {"prompt": "Find the official website", "columnKey": None},
    ])
    def test_missing_fields(self, client, body):
        with patch("litellm.aresponses", new=AsyncMock()) as search:
            resp = client.post("/fill-cell", json=body)

        assert resp.status_code == 400
        assert resp.json() == {
            "value": "", "source": "", "success": False,
            "error": "Missing required fields: prompt and columnKey",
        }
        search.assert_not_called()

    def test_no_credentials(self, unconfigured):
        with patch("litellm.aresponses", new=AsyncMock()) as search:
            resp = unconfigured.post("/fill-cell", json=ACME_REQUEST)

        assert resp.status_code == 500
        assert resp.json()["error"] == "OpenAI API key not configured"
        search.assert_not_called()


class TestCompareResults:
    def test_match(self, client):
        with patch("litellm.acompletion", new=AsyncMock(return_value=_mock_litellm_response("YES"))):
            resp = client.post("/compare-results", json={"result1": "https://acme.com", "result2": "acme.com"})

        assert resp.status_code == 200
        data = resp.json()
        assert data["match"] is True
        assert data["confidence"] >= 80

    def test_blank_inputs(self, client):
        with patch("litellm.acompletion", new=AsyncMock()) as complete:
            resp = client.post("/compare-results", json={"result1": "", "result2": "Not Found"})

        assert resp.json() == {"match": True, "confidence": 100}
        complete.assert_not_called()

    def test_backend_failure(self, client):
        with patch("litellm.acompletion", new=AsyncMock(side_effect=Exception("503 upstream"))):
            resp = client.post("/compare-results", json={"result1": "a", "result2": "b"})

        assert resp.status_code == 500
        assert resp.json() == {
            "match": False,
            "confidence": 0,
            "success": False,
            "error": "Failed to compare results",
        }

    def test_no_credentials(self, unconfigured):
        resp = unconfigured.post("/compare-results", json={"result1": "a", "result2": "b"})
        assert resp.status_code == 500
        assert resp.json() == {"match": False, "confidence": 0}


class TestAssessComplexity:
    def test_simple(self, client):
        with patch("litellm.acompletion", new=AsyncMock(return_value=_mock_litellm_response("simple"))) as complete:
            resp = client.post("/assess-complexity", json={"prompt": "Find the main phone number"})

        assert resp.status_code == 200
        assert resp.json() == {"complexity": "simple", "success": True}
        assert complete.call_args.kwargs["model"] == "gpt-3.5-turbo"

    def test_out_of_taxonomy(self, client):
        with patch("litellm.acompletion", new=AsyncMock(return_value=_mock_litellm_response("urgent"))):
            resp = client.post("/assess-complexity", json={"prompt": "Find the CEO"})
        assert resp.json()["complexity"] == "medium"

    def test_missing_prompt(self, client):
        resp = client.post("/assess-complexity", json={})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Prompt is required"

    def test_backend_failure(self, client):
        with patch("litellm.acompletion", new=AsyncMock(side_effect=Exception("503 upstream"))):
            resp = client.post("/assess-complexity", json={"prompt": "Find the CEO"})

        assert resp.status_code == 500
        assert resp.json()["error"] == "Failed to assess complexity"
        assert resp.json()["success"] is False

    def test_invalid_key(self, client):
        with patch("litellm.acompletion", new=AsyncMock(side_effect=Exception("Incorrect API key provided"))):
            resp = client.post("/assess-complexity", json={"prompt": "Find the CEO"})
        assert resp.status_code == 401

    def test_no_credentials(self, unconfigured):
        resp = unconfigured.post("/assess-complexity", json={"prompt": "Find the CEO"})
        assert resp.status_code == 500
        assert resp.json()["error"] == "OpenAI API key not configured"
