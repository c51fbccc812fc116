"""
Analysis orchestrator.

received → validating → fetching → (failed | checking) → (completed | completed_with_errors)

The page fetch is the only step everything else waits on. After it, robots /
sitemap discovery and every document check run side by side and are all
awaited; a branch that blows up becomes an ``error`` CheckResult and the rest
of the report is kept.
"""
import asyncio
import logging
import time
from typing import Dict, Optional
from urllib.parse import urlparse

import aiohttp

from ..config import get_settings
from ..errors import AnalysisError, CheckError, DiscoveryError, InvalidURL
from ..models import AnalysisStatus, CheckResult, CheckStatus, Report
from . import seo_checks
from .discovery import discover_resources
from .document import ParsedDocument
from .fetcher import FetchOptions, FetchResult, UserAgentPicker, fetch_page, normalize_url
from .score_calculator import score_and_summarize

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _origin(url: str) -> str:
    p = urlparse(url)
    return f"{p.scheme}://{p.netloc}"


def _failed(url: str, error: AnalysisError, start: float, fetch: Optional[FetchResult] = None) -> Report:
    return Report(
        url=url,
        final_url=fetch.final_url if fetch else None,
        http_status=fetch.http_status if fetch else None,
        analysis_time_ms=_elapsed_ms(start),
        analysis_status=AnalysisStatus.FAILED,
        error_message=error.message,
        error_type=error.name,
    )


def _errored(error: CheckError) -> CheckResult:
    return CheckResult(
        name=error.check_name,
        status=CheckStatus.ERROR,
        details=[error.message],
        error=error.message,
    )


async def _run_checks(
    fetch: FetchResult,
    session: aiohttp.ClientSession,
    options: FetchOptions,
    discovery_kwargs: dict,
) -> Dict[str, CheckResult]:
    loop = asyncio.get_running_loop()
    doc = await loop.run_in_executor(None, ParsedDocument, fetch.raw_html, fetch.content_length)

    registry = list(seo_checks.CHECKS)
    # robots / sitemap requests get half the page deadline
    discovery = discover_resources(
        _origin(fetch.final_url), session, timeout=options.timeout / 2, **discovery_kwargs,
    )
    outcomes = await asyncio.gather(
        discovery,
        *[loop.run_in_executor(None, check, doc, fetch) for _, check in registry],
        return_exceptions=True,
    )

    checks: Dict[str, CheckResult] = {}

    discovered = outcomes[0]
    if isinstance(discovered, BaseException):
        logger.warning("Resource discovery failed for %s: %r", fetch.final_url, discovered)
        for name in ("robots_txt", "sitemap"):
            checks[name] = _errored(DiscoveryError(name, f"Discovery failed: {discovered}"))
    else:
        robots, sitemap = discovered
        checks[robots.name] = robots
        checks[sitemap.name] = sitemap

    for (name, _), outcome in zip(registry, outcomes[1:]):
        if isinstance(outcome, BaseException):
            logger.warning("Check %s failed for %s: %r", name, fetch.final_url, outcome)
            checks[name] = _errored(CheckError(name, f"{type(outcome).__name__}: {outcome}"))
        else:
            checks[name] = outcome

    return checks


async def analyze(
    url: str,
    *,
    session: Optional[aiohttp.ClientSession] = None,
    options: Optional[FetchOptions] = None,
    pick_user_agent: Optional[UserAgentPicker] = None,
    robots_max_chars: Optional[int] = None,
    block_private_hosts: Optional[bool] = None,
) -> Report:
    """
    Analyze one page and return its Report. Fetch-level failures come back as
    a ``failed`` report carrying ``error_message`` / ``error_type`` and no
    checks; this coroutine does not raise for them.

    Limits not passed in are taken from the settings.
    """
    start = time.monotonic()
    settings = get_settings()
    options = options or settings.fetch_options()
    discovery = dict(
        pick_user_agent=pick_user_agent,
        robots_max_chars=settings.robots_max_chars if robots_max_chars is None else robots_max_chars,
        block_private_hosts=settings.block_private_hosts if block_private_hosts is None else block_private_hosts,
    )

    try:
        target = normalize_url(url)
    except InvalidURL as e:
        return _failed(url, e, start)

    if session is None:
        async with aiohttp.ClientSession() as own_session:
            return await _analyze(url, target, own_session, options, discovery, start)
    return await _analyze(url, target, session, options, discovery, start)


async def _analyze(
    url: str,
    target: str,
    session: aiohttp.ClientSession,
    options: FetchOptions,
    discovery: dict,
    start: float,
) -> Report:
    fetch = await fetch_page(target, session, options, discovery["pick_user_agent"])
    if not fetch.ok:
        return _failed(url, fetch.error, start, fetch)

    checks = await _run_checks(fetch, session, options, discovery)
    scored = score_and_summarize(checks)
    has_errors = any(c.error for c in checks.values())

    report = Report(
        url=url,
        final_url=fetch.final_url,
        http_status=fetch.http_status,
        analysis_time_ms=_elapsed_ms(start),
        analysis_status=AnalysisStatus.COMPLETED_WITH_ERRORS if has_errors else AnalysisStatus.COMPLETED,
        checks=checks,
        overall_score=scored["overall_score"],
        summary=scored["summary"],
    )
    logger.info(
        "Analyzed %s → %s in %dms (%s, score=%s)",
        url, fetch.final_url, report.analysis_time_ms,
        report.analysis_status.value, report.overall_score,
    )
    return report
