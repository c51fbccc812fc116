"""
Reports router — list, fetch and delete the caller's stored reports.
"""
import math

from fastapi import APIRouter, Depends, HTTPException, Query

from ..errors import PersistenceError
from ..models import ReportListResponse
from ..utils.auth import get_current_user
from ..utils.db_results import count_reports, delete_report, get_report, list_recent_reports

router = APIRouter(prefix="/api/reports", tags=["Reports"])


@router.get("", response_model=ReportListResponse)
async def list_reports(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: dict = Depends(get_current_user),
):
    """Most recent reports first, concise fields only."""
    owner = current_user["sub"]
    try:
        reports = await list_recent_reports(owner, page=page, limit=limit)
        total = await count_reports(owner)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=e.message)
    return ReportListResponse(
        reports=reports,
        current_page=page,
        total_pages=math.ceil(total / limit),
        total_reports=total,
    )


@router.get("/{report_id}")
async def fetch_report(report_id: str, current_user: dict = Depends(get_current_user)):
    try:
        report = await get_report(report_id, current_user["sub"])
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=e.message)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found or access denied.")
    return report


@router.delete("/{report_id}")
async def remove_report(report_id: str, current_user: dict = Depends(get_current_user)):
    try:
        deleted = await delete_report(report_id, current_user["sub"])
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=e.message)
    if not deleted:
        raise HTTPException(status_code=404, detail="Report not found or access denied.")
    return {"message": "Report deleted successfully."}
