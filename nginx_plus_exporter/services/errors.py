"""Errors that abandon a single collection cycle.

Neither error ever reaches the HTTP client: the collector logs it and
the scrape answers with no nginx samples.  Prometheus then sees the
series disappear for that scrape, which is what should happen when the
exporter cannot see nginx.
"""

from __future__ import annotations


class ScrapeError(Exception):
    """Base class: the status page at ``uri`` could not be turned into metrics."""

    def __init__(self, uri: str, message: str) -> None:
        super().__init__(message)
        self.uri = uri


class FetchError(ScrapeError):
    """Transport failure, or nginx answered with a non-2xx status."""

    def __init__(self, uri: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(uri, message)
        self.status_code = status_code


class DecodeError(ScrapeError):
    """The body was not JSON, or not a status document."""
