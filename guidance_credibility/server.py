"""
FastAPI admin server for the guidance credibility pipeline.

Each import endpoint takes tickers either as a JSON body
({"tickers": ["MSFT", "NVDA"]}) or as a query string (?tickers=MSFT,NVDA)
and returns per-ticker logs, failed tickers included.
"""

import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from fastapi import Body, Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from guidance_credibility.config import Settings
from guidance_credibility.errors import NotFoundError
from guidance_credibility.pipeline import GuidancePipeline, normalize_tickers

app = FastAPI(
    title="Guidance Credibility API",
    description="Admin API for SEC guidance extraction and credibility scoring",
    version="0.1.0",
)


class TickersRequest(BaseModel):
    """Request body for ticker batch endpoints."""
    tickers: list[str] = Field(default_factory=list, description="Ticker symbols (e.g., MSFT, NVDA)")


class BatchResponse(BaseModel):
    """Response model for batch endpoints."""
    ok: bool
    logs: list[dict]


class ScoresResponse(BaseModel):
    """Response model for the scoring endpoint."""
    ok: bool
    rows: list[dict]


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    message: str


@lru_cache(maxsize=1)
def get_pipeline() -> GuidancePipeline:
    """Shared pipeline instance built from the environment."""
    load_dotenv()
    try:
        settings = Settings.from_env()
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return GuidancePipeline(settings)


def requested_tickers(
    request: Optional[TickersRequest] = Body(None),
    tickers: Optional[str] = Query(None, description="Comma separated ticker symbols"),
) -> list[str]:
    """Tickers from the JSON body, falling back to the query string."""
    if request is not None and request.tickers:
        return normalize_tickers(request.tickers)
    return normalize_tickers(tickers)


def _batch(results) -> BatchResponse:
    return BatchResponse(ok=True, logs=[r.to_dict() for r in results])


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    return HealthResponse(status="ok", message="Service is healthy")


@app.get("/resolve/{ticker}")
def resolve(ticker: str, pipeline: GuidancePipeline = Depends(get_pipeline)):
    """Resolve a ticker to its CIK."""
    try:
        identity = pipeline.resolve_identifier(ticker)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"ticker": identity.ticker, "cik": identity.cik, "name": identity.name}


@app.post("/admin/import/fetch-filings", response_model=BatchResponse)
def fetch_filings(
    tickers: list[str] = Depends(requested_tickers),
    pipeline: GuidancePipeline = Depends(get_pipeline),
):
    """Register companies and warm the submissions cache."""
    return _batch(pipeline.import_filings(tickers))


@app.post("/admin/import/parse-guidance", response_model=BatchResponse)
def parse_guidance(
    tickers: list[str] = Depends(requested_tickers),
    pipeline: GuidancePipeline = Depends(get_pipeline),
):
    """Extract guidance from recent filings."""
    return _batch(pipeline.extract_guidance(tickers))


@app.post("/admin/import/pull-actuals", response_model=BatchResponse)
def pull_actuals(
    tickers: list[str] = Depends(requested_tickers),
    pipeline: GuidancePipeline = Depends(get_pipeline),
):
    """Align guided periods with reported actuals."""
    return _batch(pipeline.pull_actuals(tickers))


@app.post("/admin/import/analyze-language", response_model=BatchResponse)
def analyze_language(
    tickers: list[str] = Depends(requested_tickers),
    pipeline: GuidancePipeline = Depends(get_pipeline),
):
    """Store language metrics for the latest filing."""
    return _batch(pipeline.analyze_language(tickers))


@app.post("/admin/import/score-gci", response_model=ScoresResponse)
def score_gci(pipeline: GuidancePipeline = Depends(get_pipeline)):
    """Compute and store scores for every company with guidance and actuals."""
    return ScoresResponse(ok=True, rows=[card.to_dict() for card in pipeline.compute_scores()])


if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("PORT", 8080))
    uvicorn.run(app, host="0.0.0.0", port=port)
