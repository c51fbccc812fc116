"""
seoscope/errors.py — error taxonomy for one analysis.

Fatal errors abort the page fetch and end the analysis as ``failed``.
Scoped errors (CheckError, DiscoveryError) only ever degrade a single
CheckResult. PersistenceError belongs to the storage collaborator.
"""
from typing import Optional


class AnalysisError(Exception):
    """Base class. ``status_code`` is the HTTP status the API answers with."""

    status_code = 500
    fatal = True

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def name(self) -> str:
        return type(self).__name__


# ─── Fatal (page fetch) ────────────────────────────────────────────────────────

class InvalidURL(AnalysisError):
    status_code = 400


class UnresolvedHost(AnalysisError):
    status_code = 404


class Timeout(AnalysisError):
    status_code = 408


class ContentTooLarge(AnalysisError):
    status_code = 413


class UnexpectedContentType(AnalysisError):
    status_code = 415

    def __init__(self, content_type: Optional[str], expected: str = "text/html"):
        self.content_type = content_type
        super().__init__(
            f"Invalid content type: {content_type or 'not specified'}. Expected {expected}."
        )


class HTTPError(AnalysisError):
    status_code = 502

    def __init__(self, status: int):
        self.status = status
        super().__init__(f"HTTP error! Status: {status}")


class FetchFailed(AnalysisError):
    status_code = 502

    def __init__(self, message: str):
        super().__init__(f"Failed to fetch URL: {message}")


# ─── Scoped (single check) ─────────────────────────────────────────────────────

class CheckError(AnalysisError):
    fatal = False

    def __init__(self, check_name: str, message: str):
        self.check_name = check_name
        super().__init__(message)


class DiscoveryError(CheckError):
    pass


# ─── Storage ───────────────────────────────────────────────────────────────────

class PersistenceError(AnalysisError):
    status_code = 500
    fatal = False

    def __init__(self, message: str = "Analysis completed but failed to save the report."):
        super().__init__(message)


FATAL_ERRORS = {
    cls.__name__: cls
    for cls in (InvalidURL, UnresolvedHost, Timeout, ContentTooLarge,
                UnexpectedContentType, HTTPError, FetchFailed)
}


def status_code_for(error_type: Optional[str]) -> int:
    """HTTP status for a fatal error class name; unknown names are 500."""
    cls = FATAL_ERRORS.get(error_type or "")
    return cls.status_code if cls else 500
