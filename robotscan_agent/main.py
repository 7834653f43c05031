from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path

from fastapi import FastAPI
from fastapi import HTTPException
from fastapi.middleware.cors import CORSMiddleware

from dotenv import load_dotenv

from .comparison import compare_bot_permissions, compare_scan_results, detect_changes, get_diff_stats
from .config import cooldown_hours, load_scanner_config
from .domain import normalize_domain_for_cooldown
from .errors import InvalidUrlError, LlmsParseError, RobotsParseError, ScanConnectivityError
from .fetcher import probe_bot_access
from .llms_parser import parse_llms_txt, summarize_llms_txt_import
from .logging_setup import install_json_logging
from .models import (
    BotAccessRequest,
    BotAccessResult,
    ComparisonResponse,
    ImportRequest,
    LlmsImportResponse,
    OptimizationRecommendation,
    RobotsImportResponse,
    Scan,
    ScanRequest,
    ScanResponse,
    ScoreBreakdown,
)
from .recommendations import generate_optimization_recommendations
from .robots_parser import parse_robots_txt, summarize_robots_txt_import
from .scanner import run_scan
from .scoring import score_breakdown
from .storage import InMemoryCooldownStore, InMemoryScanStore


# Load environment variables from the repo root .env for local dev.
_HERE = Path(__file__).resolve()
_REPO_ROOT = _HERE.parents[1]
load_dotenv(_REPO_ROOT / ".env", override=False)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Logging is configured when the server starts, not on import.
    install_json_logging()
    yield


app = FastAPI(title="RobotScan Agent", version="0.1.0", lifespan=lifespan)

_config = load_scanner_config()
_scans = InMemoryScanStore()
_cooldowns = InMemoryCooldownStore()


def _cors_allow_origins() -> list[str]:
    raw = os.getenv("ROBOTSCAN_CORS_ORIGINS", "").strip()
    if not raw:
        return ["http://localhost:3000"]
    return [o.strip() for o in raw.split(",") if o.strip()]


# Defaults to http://localhost:3000 for local dev.
# In production, set ROBOTSCAN_CORS_ORIGINS to the deployed frontend origins.
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_allow_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _get_scan_or_404(scan_id: int) -> Scan:
    scan = _scans.get(scan_id)
    if scan is None:
        raise HTTPException(status_code=404, detail=f"Scan {scan_id} not found")
    return scan


@app.get("/healthz")
def healthz():
    return {"ok": True}


@app.post("/scan", response_model=ScanResponse)
def scan_endpoint(req: ScanRequest):
    try:
        scan = run_scan(req.url, _config)
    except InvalidUrlError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ScanConnectivityError as e:
        raise HTTPException(status_code=502, detail=e.message)

    stored = _scans.save(scan)

    # Cooldown only gates reward-bearing scans; the scan itself always runs.
    cooldown_active = False
    if req.user_id:
        domain = normalize_domain_for_cooldown(stored.url)
        if domain:
            cooldown_active = _cooldowns.check_and_touch(
                req.user_id,
                domain,
                datetime.now(timezone.utc),
                timedelta(hours=cooldown_hours()),
            )
            if cooldown_active:
                logger.info("Domain %s is on cooldown for user %s", domain, req.user_id)

    return ScanResponse(
        id=stored.id,
        url=stored.url,
        robots_txt_found=stored.robots_txt_found,
        robots_txt_content=stored.robots_txt_content,
        llms_txt_found=stored.llms_txt_found,
        llms_txt_content=stored.llms_txt_content,
        bot_permissions=stored.bot_permissions,
        errors=stored.errors,
        warnings=stored.warnings,
        score=stored.score,
        cooldown_active=cooldown_active,
    )


@app.get("/scans/{scan_id}", response_model=Scan)
def get_scan(scan_id: int):
    return _get_scan_or_404(scan_id)


@app.get("/scans/{scan_id}/recommendations", response_model=list[OptimizationRecommendation])
def get_recommendations(scan_id: int):
    return generate_optimization_recommendations(_get_scan_or_404(scan_id))


@app.get("/scans/{scan_id}/score", response_model=ScoreBreakdown)
def get_score(scan_id: int):
    return score_breakdown(_get_scan_or_404(scan_id), _config.scoring)


@app.get("/compare", response_model=ComparisonResponse)
def compare_endpoint(old_id: int, new_id: int):
    old = _get_scan_or_404(old_id)
    new = _get_scan_or_404(new_id)
    differences = compare_scan_results(old, new)
    return ComparisonResponse(
        old_scan_id=old_id,
        new_scan_id=new_id,
        differences=differences,
        stats=get_diff_stats(differences),
        bot_rows=compare_bot_permissions(old.bot_permissions, new.bot_permissions),
        changes=detect_changes(old, new),
    )


@app.post("/test-bot-access", response_model=BotAccessResult)
def bot_access_endpoint(req: BotAccessRequest):
    try:
        return probe_bot_access(req.url, req.bot_name, _config)
    except InvalidUrlError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/import/robots-txt", response_model=RobotsImportResponse)
def import_robots_txt(req: ImportRequest):
    try:
        parsed = parse_robots_txt(req.content)
    except RobotsParseError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return RobotsImportResponse(summary=summarize_robots_txt_import(parsed), parsed=parsed)


@app.post("/import/llms-txt", response_model=LlmsImportResponse)
def import_llms_txt(req: ImportRequest):
    try:
        parsed = parse_llms_txt(req.content)
    except LlmsParseError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return LlmsImportResponse(summary=summarize_llms_txt_import(parsed), parsed=parsed)
