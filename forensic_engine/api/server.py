"""
Forensic Narrative Engine: Analysis API Server
==============================================

Caller-side HTTP surface over the analysis pipeline. The pipeline itself
performs no network or file-system access; this module only adapts HTTP
bodies to contracts and reports back to JSON.

Endpoints:
- GET  /health          -> Service status
- GET  /api/v1/rules    -> Active rule table version
- POST /api/v1/analyze  -> Serialized Report + narrative text

Usage:
    uvicorn forensic_engine.api.server:app --reload
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from ..engine import ForensicPipeline, PipelineConfig, EvidenceValidationError
from ..rules import RuleTable, DEFAULT_RULES
from .mapper import (
    AnalyzeRequest, map_request_to_entries, map_report_to_dto, map_errors_to_dto
)

# =============================================================================
# INFRASTRUCTURE SETUP
# =============================================================================

# Shared read-only settings; each request builds its own pipeline
pipeline_rules: Optional[RuleTable] = None
pipeline_config: Optional[PipelineConfig] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the rule table and pipeline configuration on startup."""
    global pipeline_rules, pipeline_config

    print("[*] Loading rule table")
    pipeline_rules = DEFAULT_RULES
    pipeline_config = PipelineConfig()
    print(f"[*] Pipeline ready (rule table {pipeline_rules.version}).")

    yield

    print("[*] Shutting down pipeline.")
    pipeline_rules = None
    pipeline_config = None

app = FastAPI(
    title="Forensic Narrative Engine API",
    version="0.1.0",
    description="Deterministic contradiction and behavior analysis of evidence text",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# =============================================================================
# ENDPOINTS
# =============================================================================

@app.get("/health")
async def health_check():
    """System status."""
    if pipeline_rules is None:
        raise HTTPException(status_code=503, detail="Pipeline not initialized")
    return {"status": "online", "mode": "forensic"}


@app.get("/api/v1/rules")
async def get_rules():
    """Version of the rule table every analysis is run against."""
    if pipeline_rules is None:
        raise HTTPException(503)
    return {"version": pipeline_rules.version}


@app.post("/api/v1/analyze")
def analyze(request: AnalyzeRequest, narrative: bool = True):
    """
    Analyze a case.

    Constraint: structurally invalid evidence is rejected with 422 before
    any analysis runs.
    """
    if pipeline_rules is None:
        raise HTTPException(503)

    # Pipelines hold per-run state (clock, audit journal); never share one
    pipeline = ForensicPipeline(pipeline_config, rules=pipeline_rules)
    try:
        entries = map_request_to_entries(request)
        report = pipeline.analyze(
            entries,
            case_id=request.case_id,
            integrity_attested=request.integrity_attested,
        )
    except EvidenceValidationError as e:
        raise HTTPException(status_code=422, detail=map_errors_to_dto(e.errors))

    return map_report_to_dto(report, include_narrative=narrative)
