"""
robots.txt + sitemap discovery for one site origin.

robots.txt is fetched exactly once; the sitemap step reads the Sitemap:
directives out of that same result instead of asking the server again.
"""
import asyncio
import logging
import random
import re
from typing import List, Optional, Tuple
from urllib.parse import urljoin, urlparse

import aiohttp

from ..models import CheckResult, CheckStatus, RobotsTxtInfo, SitemapInfo
from ..utils.net_guard import is_public_host
from .fetcher import DEFAULT_TIMEOUT, USER_AGENTS, UserAgentPicker, _decode

logger = logging.getLogger(__name__)

ROBOTS_MAX_CHARS = 5000
CHUNK_SIZE = 8 * 1024
WELL_KNOWN_SITEMAPS = ("/sitemap.xml", "/sitemap_index.xml")

_DISALLOW_ALL = re.compile(r"User-agent:\s*\*\s*Disallow:\s*/[ \t]*\r?$", re.IGNORECASE | re.MULTILINE)
_SITEMAP_DIRECTIVE = re.compile(r"^[ \t]*Sitemap:[ \t]*(\S+)", re.IGNORECASE | re.MULTILINE)


def parse_sitemap_directives(content: str, origin: str) -> List[str]:
    """Every ``Sitemap:`` value, resolved against the origin, in file order."""
    found = []
    for match in _SITEMAP_DIRECTIVE.finditer(content or ""):
        url = urljoin(origin + "/", match.group(1).strip())
        if url not in found:
            found.append(url)
    return found


def sitemap_candidates(origin: str, robots: RobotsTxtInfo) -> List[str]:
    candidates = list(robots.sitemaps)
    for path in WELL_KNOWN_SITEMAPS:
        url = urljoin(origin + "/", path)
        if url not in candidates:
            candidates.append(url)
    return candidates


async def fetch_robots_txt(
    origin: str,
    session: aiohttp.ClientSession,
    timeout: float = DEFAULT_TIMEOUT / 2,
    pick_user_agent: Optional[UserAgentPicker] = None,
    max_chars: int = ROBOTS_MAX_CHARS,
) -> RobotsTxtInfo:
    pick = pick_user_agent or random.choice
    robots_url = urljoin(origin + "/", "/robots.txt")
    # a UTF-8 character is at most 4 bytes
    max_bytes = max_chars * 4

    async def _get() -> Tuple[int, str]:
        async with session.get(
            robots_url,
            headers={"User-Agent": pick(USER_AGENTS)},
            timeout=aiohttp.ClientTimeout(total=timeout),
            allow_redirects=True,
        ) as resp:
            if not 200 <= resp.status < 300:
                return resp.status, ""
            received = bytearray()
            async for chunk in resp.content.iter_chunked(CHUNK_SIZE):
                received.extend(chunk)
                if len(received) >= max_bytes:
                    break
            return resp.status, _decode(bytes(received[:max_bytes]), resp.charset)

    try:
        status, content = await asyncio.wait_for(_get(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("robots.txt check timed out for %s", origin)
        return RobotsTxtInfo(url=robots_url, error="robots.txt check timed out")
    except aiohttp.ClientError as e:
        logger.warning("Error checking robots.txt for %s: %s", origin, e)
        return RobotsTxtInfo(url=robots_url, error=f"Error checking robots.txt: {str(e)[:120]}")

    if status == 404:
        return RobotsTxtInfo(url=robots_url)
    if not 200 <= status < 300:
        return RobotsTxtInfo(url=robots_url, error=f"robots.txt check failed with status: {status}")

    return RobotsTxtInfo(
        exists=True,
        url=robots_url,
        content=content[:max_chars],
        disallows_all=bool(_DISALLOW_ALL.search(content)),
        sitemaps=parse_sitemap_directives(content, origin),
    )


async def _probe_sitemap(
    url: str,
    session: aiohttp.ClientSession,
    timeout: float,
    user_agent: str,
) -> Tuple[int, str]:
    """HEAD the candidate; servers that refuse HEAD (405/501) get a GET instead."""
    kwargs = dict(
        headers={"User-Agent": user_agent},
        timeout=aiohttp.ClientTimeout(total=timeout),
        allow_redirects=True,
    )

    async def _head():
        async with session.head(url, **kwargs) as resp:
            return resp.status, resp.headers.get("Content-Type", "")

    async def _get():
        async with session.get(url, **kwargs) as resp:
            return resp.status, resp.headers.get("Content-Type", "")

    status, content_type = await asyncio.wait_for(_head(), timeout=timeout)
    if status in (405, 501):
        status, content_type = await asyncio.wait_for(_get(), timeout=timeout)
    return status, content_type


async def _drop_private_candidates(origin: str, candidates: List[str]) -> List[str]:
    site = urlparse(origin).netloc.lower()
    kept = []
    for url in candidates:
        if urlparse(url).netloc.lower() != site and not await is_public_host(url):
            logger.warning("Skipping sitemap candidate on a private address: %s", url)
            continue
        kept.append(url)
    return kept


async def find_sitemap(
    origin: str,
    robots: RobotsTxtInfo,
    session: aiohttp.ClientSession,
    timeout: float = DEFAULT_TIMEOUT / 2,
    pick_user_agent: Optional[UserAgentPicker] = None,
    block_private_hosts: bool = True,
) -> Tuple[SitemapInfo, bool]:
    """
    Try robots.txt directives first, then the well-known paths. Returns the
    result and whether every candidate failed at the transport level.

    With ``block_private_hosts`` a directive pointing at another host is
    dropped when that host is (or resolves to) a private address.
    """
    pick = pick_user_agent or random.choice
    candidates = sitemap_candidates(origin, robots)
    if block_private_hosts:
        candidates = await _drop_private_candidates(origin, candidates)
    transport_failures = 0

    for url in candidates:
        try:
            status, content_type = await _probe_sitemap(url, session, timeout, pick(USER_AGENTS))
        except asyncio.TimeoutError:
            logger.warning("Sitemap check timed out for %s", url)
            transport_failures += 1
            continue
        except aiohttp.ClientError as e:
            logger.warning("Error checking sitemap %s: %s", url, e)
            transport_failures += 1
            continue

        if 200 <= status < 300:
            ctype = content_type.lower()
            if "xml" in ctype or "text" in ctype:
                return SitemapInfo(exists=True, url=url, candidates=candidates), False
            logger.warning("Sitemap found at %s but has unexpected content type: %s", url, content_type)

    info = SitemapInfo(
        candidates=candidates,
        error="Sitemap not found in common locations or robots.txt",
    )
    return info, bool(candidates) and transport_failures == len(candidates)


def robots_check_result(robots: RobotsTxtInfo) -> CheckResult:
    if robots.error:
        return CheckResult(
            name="robots_txt", status=CheckStatus.ERROR, value=robots,
            details=[robots.error], error=robots.error,
        )
    if not robots.exists:
        return CheckResult(
            name="robots_txt", status=CheckStatus.WARNING, value=robots,
            details=["No robots.txt found"], score=60,
        )
    if robots.disallows_all:
        return CheckResult(
            name="robots_txt", status=CheckStatus.WARNING, value=robots,
            details=["robots.txt blocks all crawlers (User-agent: * / Disallow: /)"], score=20,
        )
    return CheckResult(name="robots_txt", status=CheckStatus.OK, value=robots, score=100)


def sitemap_check_result(sitemap: SitemapInfo, unreachable: bool = False) -> CheckResult:
    if sitemap.exists:
        return CheckResult(name="sitemap", status=CheckStatus.OK, value=sitemap, score=100)
    if unreachable:
        message = f"Every sitemap candidate was unreachable ({len(sitemap.candidates)} tried)"
        return CheckResult(
            name="sitemap", status=CheckStatus.ERROR, value=sitemap,
            details=[message], error=message,
        )
    return CheckResult(
        name="sitemap", status=CheckStatus.WARNING, value=sitemap,
        details=[sitemap.error or "No sitemap found"], score=50,
    )


async def discover_resources(
    origin: str,
    session: aiohttp.ClientSession,
    timeout: float = DEFAULT_TIMEOUT / 2,
    pick_user_agent: Optional[UserAgentPicker] = None,
    robots_max_chars: int = ROBOTS_MAX_CHARS,
    block_private_hosts: bool = True,
) -> Tuple[CheckResult, CheckResult]:
    robots = await fetch_robots_txt(origin, session, timeout, pick_user_agent, robots_max_chars)
    sitemap, unreachable = await find_sitemap(
        origin, robots, session, timeout, pick_user_agent, block_private_hosts,
    )
    return robots_check_result(robots), sitemap_check_result(sitemap, unreachable)
