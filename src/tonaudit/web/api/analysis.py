"""REST API for scans, exploit validation and attack surface."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from tonaudit.analyzer import (
    AnalysisInputError,
    enumerate_attack_surface,
    ensure_source,
    validate_exploits,
)
from tonaudit.analyzer.engine import RuleEngine
from tonaudit.analyzer.feasibility import resilience_score, risk_level
from tonaudit.analyzer.models import ExploitStatus
from tonaudit.web.cache import content_hash

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analysis"])


class SourceBody(BaseModel):
    code: str


class ExploitsBody(BaseModel):
    code: str
    exploits: list[dict] = []


def _bad_input(e: AnalysisInputError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(e)})


@router.post("/scan")
def scan_source(body: SourceBody, request: Request):
    config = request.app.state.config
    try:
        source = ensure_source(body.code, max_bytes=config.max_source_bytes)
    except AnalysisInputError as e:
        return _bad_input(e)

    catalog = request.app.state.catalog
    cache = request.app.state.cache
    key = content_hash(source, catalog.name)
    cached = cache.get(key)
    if cached is not None:
        logger.debug("Returning cached scan result for %s", key[:12])
        return cached

    result = RuleEngine(catalog).scan(source).to_dict()
    cache.put(key, result)
    return result


@router.post("/exploits/validate")
def validate(body: ExploitsBody, request: Request):
    config = request.app.state.config
    try:
        source = ensure_source(body.code, max_bytes=config.max_source_bytes)
    except AnalysisInputError as e:
        return _bad_input(e)

    verdicts = validate_exploits(body.exploits, source)
    score = resilience_score(verdicts)
    plausible = sum(1 for v in verdicts if v.status == ExploitStatus.PLAUSIBLE)
    return {
        "exploits": [v.to_dict() for v in verdicts],
        "resilience_score": score,
        "risk_level": risk_level(score, plausible),
    }


@router.post("/surface")
def attack_surface(body: SourceBody, request: Request):
    config = request.app.state.config
    try:
        source = ensure_source(body.code, max_bytes=config.max_source_bytes)
    except AnalysisInputError as e:
        return _bad_input(e)
    return {"attack_surface": [s.to_dict() for s in enumerate_attack_surface(source)]}
