"""AEO readiness API – FastAPI app exposing the analysis pipeline."""

import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from extractor import ExtractionError, fetch_evidence
from llm_service import get_default_transport
from pipeline import AnalysisPipeline
from rubric import ConfigError
from schemas import AnalysisOptions, AnalyzeRequest, AnalyzeResponse, EvidenceAnalyzeRequest

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(
    title="AEO Readiness API",
    description="Scores a page for AI answer-engine readiness and recommends fixes",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup() -> None:
    # rubric defects are fatal here rather than at request time
    app.state.pipeline = AnalysisPipeline(transport=get_default_transport())


def get_pipeline() -> AnalysisPipeline:
    pipeline = getattr(app.state, "pipeline", None)
    if pipeline is None:
        pipeline = AnalysisPipeline(transport=get_default_transport())
        app.state.pipeline = pipeline
    return pipeline


def _check_tier(tier: str) -> None:
    if tier not in get_pipeline().config.tier_limits:
        raise HTTPException(status_code=400, detail=f"Unknown tier: {tier}")


def _run(evidence: dict, options: AnalysisOptions) -> dict:
    _check_tier(options.tier)
    pipeline = get_pipeline()
    try:
        return pipeline.analyze(
            evidence,
            tier=options.tier,
            industry=options.industry,
            include_recommendations=options.include_recommendations,
            user_progress=options.user_progress.model_dump() if options.user_progress else None,
            today=options.today,
        )
    except ConfigError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@app.post("/analyze", response_model=AnalyzeResponse, response_model_by_alias=True)
def analyze(body: AnalyzeRequest) -> dict:
    """
    Pipeline: fetch page -> build evidence -> score -> issues -> recommendations -> tier filter.
    """
    _check_tier(body.tier)
    try:
        evidence = fetch_evidence(body.url)
    except ExtractionError as e:
        logger.warning("SCRAPER ERROR: %s", e)
        raise HTTPException(status_code=502, detail=str(e)) from e
    return _run(evidence, body)


@app.post("/analyze/evidence", response_model=AnalyzeResponse, response_model_by_alias=True)
def analyze_evidence(body: EvidenceAnalyzeRequest) -> dict:
    """Score a caller-supplied Evidence payload without fetching anything."""
    return _run(body.evidence, body)


@app.get("/health")
def health() -> dict:
    """Health check for deployment."""
    return {"status": "ok"}
