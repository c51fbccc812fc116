"""
API tests — /api/search/analyze and /api/reports.
The analyzer is mocked; these exercise status mapping, SSRF guarding,
persistence and per-caller scoping.
"""
import ipaddress

import pytest

from seoscope.errors import PersistenceError
from seoscope.models import AnalysisStatus, CheckResult, CheckStatus, Report
from seoscope.routers import search_router
from seoscope.services import analyzer
from seoscope.utils import db_results
from seoscope.utils.net_guard import is_blocked_ip


def _completed(url="https://example.com"):
    return Report(
        url=url,
        final_url=url + "/",
        http_status=200,
        analysis_time_ms=42,
        analysis_status=AnalysisStatus.COMPLETED,
        checks={"https": CheckResult(name="https", status=CheckStatus.OK, score=100)},
        overall_score=100,
        summary="Overall SEO health is excellent (100/100). No critical issues detected.",
    )


def _failed(error_type, message, url="https://example.com"):
    return Report(
        url=url,
        analysis_status=AnalysisStatus.FAILED,
        error_type=error_type,
        error_message=message,
    )


@pytest.fixture
def public_hosts(monkeypatch):
    async def always_public(url):
        return True
    monkeypatch.setattr(search_router, "is_public_host", always_public)


@pytest.fixture
def fake_analysis(monkeypatch, public_hosts):
    """Replace the analyzer; set ``.report`` to choose what it returns."""
    class Fake:
        report = _completed()
        calls = []

        async def __call__(self, url, **kwargs):
            self.calls.append(url)
            return self.report

    fake = Fake()
    fake.calls = []
    monkeypatch.setattr(analyzer, "analyze", fake)
    return fake


# ─── Health ───────────────────────────────────────────────────────────────────

def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["database"] == "in-memory fallback"


# ─── Auth ─────────────────────────────────────────────────────────────────────

def test_analyze_requires_token(client):
    resp = client.post("/api/search/analyze", json={"url": "https://example.com"})
    assert resp.status_code == 401


def test_garbage_token_rejected(client):
    resp = client.get("/api/reports", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


# ─── Validation / SSRF ────────────────────────────────────────────────────────

def test_invalid_url_is_400(client, auth_headers, fake_analysis):
    resp = client.post("/api/search/analyze", json={"url": "ftp://example.com"}, headers=auth_headers)
    assert resp.status_code == 400
    assert "Invalid URL" in resp.json()["detail"]
    assert fake_analysis.calls == []


def test_missing_url_field_is_422(client, auth_headers):
    resp = client.post("/api/search/analyze", json={}, headers=auth_headers)
    assert resp.status_code == 422


@pytest.mark.parametrize("url", ["http://127.0.0.1:8000", "10.1.2.3", "http://[::1]/", "http://169.254.169.254/latest"])
def test_private_targets_blocked(client, auth_headers, url):
    resp = client.post("/api/search/analyze", json={"url": url}, headers=auth_headers)
    assert resp.status_code == 400
    assert "SSRF" in resp.json()["detail"]


class TestSSRFProtection:
    """Tests for is_blocked_ip(), the address filter behind the SSRF guard."""

    def test_loopback_is_blocked(self):
        assert is_blocked_ip("127.0.0.1") is True
        assert is_blocked_ip("127.0.0.99") is True

    def test_private_ranges_are_blocked(self):
        for ip in ("10.0.0.1", "10.255.255.255", "172.16.0.1", "172.31.255.255", "192.168.1.1"):
            assert is_blocked_ip(ip) is True

    def test_link_local_metadata_is_blocked(self):
        assert is_blocked_ip("169.254.169.254") is True

    def test_ipv6_local_is_blocked(self):
        assert is_blocked_ip("::1") is True
        assert is_blocked_ip("fd00::1") is True
        assert is_blocked_ip("fe80::1") is True

    def test_public_addresses_allowed(self):
        assert is_blocked_ip("8.8.8.8") is False
        assert is_blocked_ip("172.32.0.1") is False
        assert is_blocked_ip("2606:4700:4700::1111") is False

    def test_non_ip_is_not_blocked(self):
        assert is_blocked_ip("example.com") is False

    def test_blocklist_covers_cloud_metadata_network(self):
        assert ipaddress.ip_address("169.254.169.254") in ipaddress.ip_network("169.254.0.0/16")


# ─── Analyze ──────────────────────────────────────────────────────────────────

def test_completed_analysis_is_stored_and_returned(client, auth_headers, fake_analysis):
    resp = client.post("/api/search/analyze", json={"url": "https://example.com"}, headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["analysis_status"] == "completed"
    assert body["overall_score"] == 100
    assert body["report_id"]
    assert body["owner_id"] == "user-1"
    assert fake_analysis.calls == ["https://example.com"]


@pytest.mark.parametrize(
    "error_type, message, status",
    [
        ("ContentTooLarge", "Downloaded content exceeds size limit of 5 MB", 413),
        ("Timeout", "Request timed out after 15 seconds", 408),
        ("UnexpectedContentType", "Invalid content type: application/pdf. Expected text/html.", 415),
        ("HTTPError", "HTTP error! Status: 404", 502),
        ("UnresolvedHost", "Could not resolve or connect to host: nowhere.invalid", 404),
        ("FetchFailed", "Failed to fetch URL: connection reset", 502),
    ],
)
def test_failed_analysis_maps_error_type_to_status(client, auth_headers, fake_analysis, error_type, message, status):
    fake_analysis.report = _failed(error_type, message)
    resp = client.post("/api/search/analyze", json={"url": "https://example.com"}, headers=auth_headers)
    assert resp.status_code == status
    detail = resp.json()["detail"]
    assert detail["error_type"] == error_type
    assert detail["error"] == message
    # failed analyses are not stored
    assert client.get("/api/reports", headers=auth_headers).json()["total_reports"] == 0


def test_completed_with_errors_is_still_stored(client, auth_headers, fake_analysis):
    report = _completed()
    report.analysis_status = AnalysisStatus.COMPLETED_WITH_ERRORS
    report.checks["robots_txt"] = CheckResult(
        name="robots_txt", status=CheckStatus.ERROR, error="robots.txt returned HTTP 503",
    )
    fake_analysis.report = report
    resp = client.post("/api/search/analyze", json={"url": "https://example.com"}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["analysis_status"] == "completed_with_errors"
    assert resp.json()["checks"]["robots_txt"]["status"] == "error"


def test_persistence_failure_is_500_with_report(client, auth_headers, fake_analysis, monkeypatch):
    async def broken_save(report, owner_id):
        raise PersistenceError()

    monkeypatch.setattr(search_router, "save_report", broken_save)
    resp = client.post("/api/search/analyze", json={"url": "https://example.com"}, headers=auth_headers)
    assert resp.status_code == 500
    detail = resp.json()["detail"]
    assert detail["error_type"] == "PersistenceError"
    assert detail["analysis_status"] == "completed"
    assert detail["report"]["overall_score"] == 100


def test_unexpected_analyzer_crash_is_500(client, auth_headers, public_hosts, monkeypatch):
    async def crash(url, **kwargs):
        raise RuntimeError("unexpected")

    monkeypatch.setattr(analyzer, "analyze", crash)
    resp = client.post("/api/search/analyze", json={"url": "https://example.com"}, headers=auth_headers)
    assert resp.status_code == 500


# ─── Reports ──────────────────────────────────────────────────────────────────

def _store_reports(client, headers, n):
    ids = []
    for i in range(n):
        resp = client.post("/api/search/analyze", json={"url": f"https://example.com/{i}"}, headers=headers)
        ids.append(resp.json()["report_id"])
    return ids


def test_list_is_paginated_and_concise(client, auth_headers, fake_analysis):
    _store_reports(client, auth_headers, 3)
    resp = client.get("/api/reports?page=1&limit=2", headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["total_reports"] == 3
    assert body["total_pages"] == 2
    assert body["current_page"] == 1
    assert len(body["reports"]) == 2
    assert "checks" not in body["reports"][0]
    assert "report_id" in body["reports"][0]

    second = client.get("/api/reports?page=2&limit=2", headers=auth_headers).json()
    assert len(second["reports"]) == 1


def test_bad_pagination_rejected(client, auth_headers):
    assert client.get("/api/reports?page=0", headers=auth_headers).status_code == 422
    assert client.get("/api/reports?limit=101", headers=auth_headers).status_code == 422


def test_get_and_delete_own_report(client, auth_headers, fake_analysis):
    (report_id,) = _store_reports(client, auth_headers, 1)

    resp = client.get(f"/api/reports/{report_id}", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["checks"]["https"]["status"] == "ok"

    resp = client.delete(f"/api/reports/{report_id}", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json() == {"message": "Report deleted successfully."}
    assert client.get(f"/api/reports/{report_id}", headers=auth_headers).status_code == 404


def test_reports_are_scoped_to_their_owner(client, auth_headers, other_auth_headers, fake_analysis):
    (report_id,) = _store_reports(client, auth_headers, 1)

    assert client.get(f"/api/reports/{report_id}", headers=other_auth_headers).status_code == 404
    assert client.delete(f"/api/reports/{report_id}", headers=other_auth_headers).status_code == 404
    assert client.get("/api/reports", headers=other_auth_headers).json()["total_reports"] == 0
    assert client.get(f"/api/reports/{report_id}", headers=auth_headers).status_code == 200


def test_unknown_report_is_404(client, auth_headers):
    resp = client.get("/api/reports/does-not-exist", headers=auth_headers)
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Report not found or access denied."


@pytest.mark.asyncio
async def test_memory_store_keeps_only_the_newest_reports(monkeypatch):
    monkeypatch.setattr(db_results, "MEM_MAX_REPORTS", 2)
    saved = [await db_results.save_report(_completed(f"https://example.com/{i}"), "user-1") for i in range(3)]

    assert saved[0]["report_id"] not in db_results._mem
    assert await db_results.count_reports("user-1") == 2
    assert await db_results.get_report(saved[2]["report_id"], "user-1") is not None
