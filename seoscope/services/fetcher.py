"""
Page fetcher — one GET under a hard deadline, a byte cap and a content-type
allow-list. Failures come back inside the FetchResult, never as exceptions.
"""
import asyncio
import logging
import random
import re
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence, Tuple
from urllib.parse import urlparse

import aiohttp

from ..errors import (
    AnalysisError, ContentTooLarge, FetchFailed, HTTPError, InvalidURL,
    Timeout, UnexpectedContentType, UnresolvedHost,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0
MAX_CONTENT_SIZE = 5 * 1024 * 1024  # 5 MB
CHUNK_SIZE = 64 * 1024

USER_AGENTS: Tuple[str, ...] = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
    "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)",
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_2 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.2 Mobile/15E148 Safari/604.1",
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/121.0.0.0 Mobile Safari/537.36",
)

UserAgentPicker = Callable[[Sequence[str]], str]

_SCHEME_RE = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.\-]*)://")


@dataclass(frozen=True)
class FetchOptions:
    timeout: float = DEFAULT_TIMEOUT
    max_bytes: int = MAX_CONTENT_SIZE
    allowed_content_types: Tuple[str, ...] = ("text/html",)


@dataclass(frozen=True)
class FetchResult:
    requested_url: str
    final_url: Optional[str] = None
    http_status: Optional[int] = None
    content_type: Optional[str] = None
    raw_html: Optional[str] = None
    content_length: int = 0            # bytes actually received
    error: Optional[AnalysisError] = field(default=None, compare=False)

    @property
    def ok(self) -> bool:
        return self.error is None


def normalize_url(raw: str) -> str:
    """Prepend http:// to a bare host and reject anything that still isn't a usable URL."""
    url = (raw or "").strip()
    if not url:
        raise InvalidURL("Invalid URL format provided: empty URL.")

    m = _SCHEME_RE.match(url)
    if m is None:
        url = f"http://{url}"
    elif m.group(1).lower() not in ("http", "https"):
        raise InvalidURL(f"Invalid URL format provided: unsupported scheme '{m.group(1)}'.")

    try:
        parsed = urlparse(url)
        parsed.port  # raises ValueError on a bad port
    except ValueError as e:
        raise InvalidURL(f"Invalid URL format provided: {e}")
    if not parsed.hostname or any(c.isspace() for c in parsed.netloc):
        raise InvalidURL(f"Invalid URL format provided: {raw!r}")
    return url


def _declared_length(response) -> Optional[int]:
    raw = response.headers.get("Content-Length")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _decode(body: bytes, charset: Optional[str]) -> str:
    try:
        return body.decode(charset or "utf-8", errors="replace")
    except LookupError:
        return body.decode("utf-8", errors="replace")


async def _download(
    url: str,
    session: aiohttp.ClientSession,
    options: FetchOptions,
    user_agent: str,
) -> FetchResult:
    limit_mb = options.max_bytes / (1024 * 1024)
    async with session.get(
        url,
        headers={"User-Agent": user_agent, "Accept": "text/html,*/*"},
        timeout=aiohttp.ClientTimeout(total=options.timeout),
        allow_redirects=True,
    ) as resp:
        final_url = str(resp.url)
        status = resp.status

        if not 200 <= status < 300:
            raise HTTPError(status)

        content_type = resp.headers.get("Content-Type")
        if not content_type or not any(t in content_type.lower() for t in options.allowed_content_types):
            raise UnexpectedContentType(content_type, expected=", ".join(options.allowed_content_types))

        declared = _declared_length(resp)
        if declared is not None and declared > options.max_bytes:
            raise ContentTooLarge(
                f"Declared content length exceeds size limit of {limit_mb:g} MB"
            )

        # Content-Length may lie; count what actually arrives
        received = bytearray()
        async for chunk in resp.content.iter_chunked(CHUNK_SIZE):
            received.extend(chunk)
            if len(received) > options.max_bytes:
                raise ContentTooLarge(
                    f"Downloaded content exceeds size limit of {limit_mb:g} MB"
                )

        return FetchResult(
            requested_url=url,
            final_url=final_url,
            http_status=status,
            content_type=content_type,
            raw_html=_decode(bytes(received), resp.charset),
            content_length=len(received),
        )


async def fetch_page(
    url: str,
    session: aiohttp.ClientSession,
    options: Optional[FetchOptions] = None,
    pick_user_agent: Optional[UserAgentPicker] = None,
) -> FetchResult:
    """
    Fetch ``url`` once. ``url`` should already be normalized; a bare host is
    normalized here too. Every failure maps onto the error taxonomy and is
    returned in ``FetchResult.error``.
    """
    options = options or FetchOptions()
    pick = pick_user_agent or random.choice

    try:
        url = normalize_url(url)
    except InvalidURL as e:
        return FetchResult(requested_url=url, error=e)

    try:
        return await asyncio.wait_for(
            _download(url, session, options, pick(USER_AGENTS)),
            timeout=options.timeout,
        )
    except AnalysisError as e:
        status = e.status if isinstance(e, HTTPError) else None
        logger.warning("Fetch of %s rejected: %s", url, e.message)
        return FetchResult(requested_url=url, http_status=status, error=e)
    except asyncio.TimeoutError:
        logger.warning("Fetch of %s timed out after %ss", url, options.timeout)
        return FetchResult(
            requested_url=url,
            error=Timeout(f"Request timed out after {options.timeout:g} seconds"),
        )
    except aiohttp.ClientSSLError as e:
        # subclass of ClientConnectorError; the host resolved fine
        logger.warning("TLS error fetching %s: %s", url, e)
        return FetchResult(requested_url=url, error=FetchFailed(f"TLS error: {str(e)[:200]}"))
    except aiohttp.ClientConnectorError as e:
        host = urlparse(url).hostname
        logger.warning("Could not connect to %s: %s", host, e)
        return FetchResult(
            requested_url=url,
            error=UnresolvedHost(f"Could not resolve or connect to host: {host}"),
        )
    except aiohttp.InvalidURL as e:
        return FetchResult(requested_url=url, error=InvalidURL(f"Invalid URL format provided: {e}"))
    except aiohttp.ClientError as e:
        logger.warning("Fetch error for %s: %s", url, e)
        return FetchResult(requested_url=url, error=FetchFailed(str(e)[:200] or type(e).__name__))
