"""Tests for the admin API."""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from guidance_credibility.errors import NotFoundError
from guidance_credibility.models import ScoreCard, TickerResult
from guidance_credibility.server import app, get_pipeline
from guidance_credibility.sources.sec_edgar.identity import CompanyIdentity


@pytest.fixture
def pipeline() -> Mock:
    return Mock()


@pytest.fixture
def client(pipeline: Mock):
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client: TestClient):
    """Test the health check endpoint."""
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "message": "Service is healthy"}


class TestResolve:
    """Tests for GET /resolve/{ticker}."""

    def test_known_ticker(self, client: TestClient, pipeline: Mock):
        """Test resolving a known ticker."""
        pipeline.resolve_identifier.return_value = CompanyIdentity("MSFT", "0000789019", "MICROSOFT CORP")

        response = client.get("/resolve/msft")

        assert response.status_code == 200
        assert response.json() == {"ticker": "MSFT", "cik": "0000789019", "name": "MICROSOFT CORP"}
        pipeline.resolve_identifier.assert_called_once_with("msft")

    def test_unknown_ticker(self, client: TestClient, pipeline: Mock):
        """Test that an unknown ticker returns 404."""
        pipeline.resolve_identifier.side_effect = NotFoundError("Ticker not found: ZZZZ")

        response = client.get("/resolve/ZZZZ")

        assert response.status_code == 404
        assert response.json()["detail"] == "Ticker not found: ZZZZ"


class TestBatchEndpoints:
    """Tests for the /admin/import endpoints."""

    def test_tickers_from_body(self, client: TestClient, pipeline: Mock):
        """Test tickers given in the JSON body."""
        pipeline.import_filings.return_value = [
            TickerResult(ticker="MSFT", success=True, count=3),
            TickerResult(ticker="ZZZZ", success=False, error="Ticker not found: ZZZZ"),
        ]

        response = client.post("/admin/import/fetch-filings", json={"tickers": ["msft", " zzzz "]})

        assert response.status_code == 200
        assert response.json() == {
            "ok": True,
            "logs": [
                {"ticker": "MSFT", "ok": True, "count": 3},
                {"ticker": "ZZZZ", "ok": False, "error": "Ticker not found: ZZZZ"},
            ],
        }
        pipeline.import_filings.assert_called_once_with(["MSFT", "ZZZZ"])

    def test_tickers_from_query(self, client: TestClient, pipeline: Mock):
        """Test tickers given as a comma-separated query parameter."""
        pipeline.extract_guidance.return_value = [TickerResult(ticker="NVDA", success=True, count=2)]

        response = client.post("/admin/import/parse-guidance?tickers=nvda,msft")

        assert response.status_code == 200
        pipeline.extract_guidance.assert_called_once_with(["NVDA", "MSFT"])

    def test_body_wins_over_query(self, client: TestClient, pipeline: Mock):
        """Test that body tickers take precedence over query tickers."""
        pipeline.pull_actuals.return_value = []

        client.post("/admin/import/pull-actuals?tickers=NVDA", json={"tickers": ["MSFT"]})

        pipeline.pull_actuals.assert_called_once_with(["MSFT"])

    def test_analyze_language(self, client: TestClient, pipeline: Mock):
        """Test that language metric details are flattened into the log."""
        pipeline.analyze_language.return_value = [
            TickerResult(ticker="MSFT", success=True, words_total=1200, details={"hedges_per_k": 4.2})
        ]

        response = client.post("/admin/import/analyze-language", json={"tickers": ["MSFT"]})

        assert response.json()["logs"] == [
            {"ticker": "MSFT", "ok": True, "words_total": 1200, "hedges_per_k": 4.2}
        ]

    def test_score_gci(self, client: TestClient, pipeline: Mock):
        """Test the score endpoint response rows."""
        pipeline.compute_scores.return_value = [
            ScoreCard(
                ticker="MSFT",
                period_id=7,
                fy=2025,
                fp="Q2",
                tra=99,
                cvp=90,
                lr=100,
                gci=98,
                badge="High",
                rationale="Auto-computed based on guidance vs actuals and language metrics.",
            )
        ]

        response = client.post("/admin/import/score-gci")

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["rows"][0]["ticker"] == "MSFT"
        assert body["rows"][0]["gci"] == 98
        assert body["rows"][0]["badge"] == "High"
