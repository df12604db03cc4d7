"""Grant Analyzer — Exceptions.

Run-level failures (authentication, listing fetch/parse) propagate out
of the pipeline. Record-level failures (detail fetch, verdict decoding)
are caught where they happen and turned into fallbacks.
"""

from __future__ import annotations

from typing import Optional


class GrantAnalyzerError(Exception):
    """Base class for all Grant Analyzer errors."""


class AuthenticationError(GrantAnalyzerError):
    """Raised when the scripted login cannot produce a session."""


class NetworkError(GrantAnalyzerError):
    """Raised when an HTTP request fails or returns a non-2xx status.

    Attributes:
        url: The requested URL.
        status_code: HTTP status of the final response, if one was received.
    """

    def __init__(
        self, message: str, url: str, status_code: Optional[int] = None
    ) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class ListingFetchError(NetworkError):
    """Raised when a listing page cannot be retrieved."""


class DetailFetchError(NetworkError):
    """Raised when a detail page cannot be retrieved."""


class ListingParseError(GrantAnalyzerError):
    """Raised when listing markup is empty or cannot be parsed at all."""


class ClassificationParseError(GrantAnalyzerError):
    """Raised when evaluator output is not a valid verdict object."""


class SinkClosedError(GrantAnalyzerError):
    """Raised when writing to a sink that is closed or whose consumer left."""
