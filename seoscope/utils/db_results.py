"""
seoscope/utils/db_results.py — MongoDB persistence for analysis reports.
Automatically falls back to an in-memory dict when MongoDB is unavailable.
Every read and write is scoped to the owning caller.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from pymongo.errors import PyMongoError

from seoscope.database import get_db
from seoscope.errors import PersistenceError
from seoscope.models import Report

logger = logging.getLogger(__name__)

_mem: dict = {}  # in-memory fallback, insertion-ordered
MEM_MAX_REPORTS = 1000

# Concise fields for list views
SUMMARY_FIELDS = (
    "report_id", "url", "final_url", "overall_score", "analysis_status",
    "created_at", "http_status", "error_message",
)


def _clean(doc: dict) -> dict:
    if doc and "_id" in doc:
        doc.pop("_id")
    return doc


def _summary(doc: dict) -> dict:
    return {k: doc.get(k) for k in SUMMARY_FIELDS}


async def save_report(report: Report, owner_id: str) -> dict:
    """Persist a finished report; returns the stored document (with report_id/created_at)."""
    data = report.model_dump(mode="json")
    data["report_id"] = str(uuid.uuid4())
    data["owner_id"] = owner_id
    data["created_at"] = datetime.now(timezone.utc).isoformat()

    db = get_db()
    if db is None:
        _mem[data["report_id"]] = data
        while len(_mem) > MEM_MAX_REPORTS:
            _mem.pop(next(iter(_mem)))
        return dict(data)
    try:
        await db.reports.insert_one(dict(data))
    except PyMongoError as e:
        logger.error("Error saving report for %s: %s", report.url, e)
        raise PersistenceError() from e
    return data


async def list_recent_reports(owner_id: str, page: int = 1, limit: int = 10) -> List[dict]:
    skip = (page - 1) * limit
    db = get_db()
    if db is None:
        mine = [r for r in _mem.values() if r.get("owner_id") == owner_id]
        mine.sort(key=lambda r: r.get("created_at", ""), reverse=True)
        return [_summary(r) for r in mine[skip: skip + limit]]
    try:
        cursor = (
            db.reports.find({"owner_id": owner_id}, {f: 1 for f in SUMMARY_FIELDS})
            .sort("created_at", -1)
            .skip(skip)
            .limit(limit)
        )
        return [_summary(_clean(doc)) async for doc in cursor]
    except PyMongoError as e:
        logger.error("Error listing reports for %s: %s", owner_id, e)
        raise PersistenceError("Failed to retrieve reports.") from e


async def count_reports(owner_id: str) -> int:
    db = get_db()
    if db is None:
        return sum(1 for r in _mem.values() if r.get("owner_id") == owner_id)
    try:
        return await db.reports.count_documents({"owner_id": owner_id})
    except PyMongoError as e:
        raise PersistenceError("Failed to count reports.") from e


async def get_report(report_id: str, owner_id: str) -> Optional[dict]:
    db = get_db()
    if db is None:
        doc = _mem.get(report_id)
        return dict(doc) if doc and doc.get("owner_id") == owner_id else None
    try:
        doc = await db.reports.find_one({"report_id": report_id, "owner_id": owner_id})
    except PyMongoError as e:
        raise PersistenceError("Failed to retrieve the report.") from e
    return _clean(doc) if doc else None


async def delete_report(report_id: str, owner_id: str) -> bool:
    db = get_db()
    if db is None:
        doc = _mem.get(report_id)
        if doc and doc.get("owner_id") == owner_id:
            del _mem[report_id]
            return True
        return False
    try:
        res = await db.reports.delete_one({"report_id": report_id, "owner_id": owner_id})
    except PyMongoError as e:
        raise PersistenceError("Failed to delete the report.") from e
    return res.deleted_count > 0
