from __future__ import annotations

from typing import Optional


class FeedError(Exception):
    """Base class for failures reported by the ingestion pipeline."""


class InvalidURL(FeedError):
    def __init__(self, url: str) -> None:
        super().__init__(f"Invalid URL: {url!r}")
        self.url = url


class NetworkError(FeedError):
    """Transport failure: timeout, DNS, TLS or a non-2xx response."""

    def __init__(self, url: str, cause: Optional[BaseException] = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Network error fetching {url}{detail}")
        self.url = url
        self.cause = cause


class ParsingFailed(FeedError):
    """Payload is not a well-formed feed document."""

    def __init__(self, message: str = "Feed document could not be parsed") -> None:
        super().__init__(message)


class UnsupportedFormat(ParsingFailed):
    """Payload parsed, but is not RSS, Atom or JSON Feed."""

    def __init__(self, message: str = "Document is not an RSS, Atom or JSON feed") -> None:
        super().__init__(message)


class DuplicateFeed(FeedError):
    def __init__(self, url: str) -> None:
        super().__init__(f"Feed already exists: {url}")
        self.url = url
