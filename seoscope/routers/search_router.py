"""
seoscope/routers/search_router.py — POST /api/search/analyze
Runs one analysis synchronously and stores the finished report for the caller.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException

from seoscope.config import get_settings
from seoscope.errors import InvalidURL, PersistenceError, status_code_for
from seoscope.models import AnalysisStatus, AnalyzeRequest
from seoscope.services import analyzer
from seoscope.services.fetcher import normalize_url
from seoscope.utils.auth import get_current_user
from seoscope.utils.db_results import save_report
from seoscope.utils.net_guard import is_public_host

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/search", tags=["Search"])

# ── Endpoint ───────────────────────────────────────────────────────────────────
@router.post("/analyze")
async def analyze_url(req: AnalyzeRequest, current_user: dict = Depends(get_current_user)):
    settings = get_settings()
    try:
        target = normalize_url(req.url)
    except InvalidURL as e:
        raise HTTPException(status_code=400, detail=e.message)

    if settings.block_private_hosts and not await is_public_host(target):
        raise HTTPException(status_code=400, detail="URL blocked by SSRF protection.")

    try:
        report = await analyzer.analyze(req.url)
    except Exception:
        logger.exception("Unhandled analysis error for %s", req.url)
        raise HTTPException(status_code=500, detail="An unexpected error occurred during analysis.")

    if report.analysis_status == AnalysisStatus.FAILED:
        raise HTTPException(
            status_code=status_code_for(report.error_type),
            detail={"error": report.error_message, "error_type": report.error_type, "url": report.url},
        )

    try:
        return await save_report(report, current_user["sub"])
    except PersistenceError as e:
        raise HTTPException(
            status_code=e.status_code,
            detail={
                "error": e.message,
                "error_type": e.name,
                "analysis_status": report.analysis_status.value,
                "report": report.model_dump(mode="json") if settings.environment != "production" else None,
            },
        )
