from __future__ import annotations

import enum
import io
import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Union

import feedparser

from .errors import ParsingFailed, UnsupportedFormat

logger = logging.getLogger(__name__)

_BOM = b"\xef\xbb\xbf"


class FormatKind(enum.Enum):
    RSS = "rss"
    ATOM = "atom"
    JSON_FEED = "json"


@dataclass(slots=True)
class RSSDocument:
    """RSS 0.9x/1.0/2.0 channel as produced by feedparser."""

    feed: Mapping[str, Any]
    items: List[Mapping[str, Any]] = field(default_factory=list)
    version: str = "rss20"

    kind = FormatKind.RSS


@dataclass(slots=True)
class AtomDocument:
    """Atom 0.3/1.0 feed as produced by feedparser."""

    feed: Mapping[str, Any]
    items: List[Mapping[str, Any]] = field(default_factory=list)
    version: str = "atom10"

    kind = FormatKind.ATOM


@dataclass(slots=True)
class JSONFeedDocument:
    """JSON Feed top-level object, decoded as-is."""

    feed: Mapping[str, Any]
    items: List[Mapping[str, Any]] = field(default_factory=list)
    version: str = ""

    kind = FormatKind.JSON_FEED


ParsedDocument = Union[RSSDocument, AtomDocument, JSONFeedDocument]


def parse_document(payload: bytes) -> ParsedDocument:
    """Detect the feed format from the payload structure and parse it.

    Content-type headers are deliberately not an input: servers routinely
    label feeds ``text/html`` or ``application/octet-stream``.
    """
    stripped = payload.lstrip(_BOM).lstrip()
    if stripped.startswith(b"{"):
        return _parse_json(stripped)
    return _parse_xml(payload)


def _parse_json(payload: bytes) -> JSONFeedDocument:
    try:
        data = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise ParsingFailed(f"Malformed JSON: {exc}") from exc
    if not isinstance(data, Mapping):
        raise UnsupportedFormat("JSON document is not an object")
    version = data.get("version")
    if not isinstance(version, str) or "jsonfeed.org" not in version:
        raise UnsupportedFormat("JSON document is not a JSON Feed")
    items = data.get("items")
    if not isinstance(items, list):
        items = []
    return JSONFeedDocument(
        feed=data,
        items=[item for item in items if isinstance(item, Mapping)],
        version=version,
    )


def _parse_xml(payload: bytes) -> Union[RSSDocument, AtomDocument]:
    # A stream keeps feedparser from treating the payload as a path or URL.
    parsed = feedparser.parse(io.BytesIO(payload))
    version = str(parsed.get("version") or "").lower()
    if version.startswith("rss"):
        return RSSDocument(feed=parsed.feed, items=list(parsed.entries), version=version)
    if version.startswith("atom"):
        return AtomDocument(feed=parsed.feed, items=list(parsed.entries), version=version)
    if parsed.get("bozo"):
        exc = parsed.get("bozo_exception")
        logger.debug("feedparser rejected payload: %s", exc)
        raise ParsingFailed(f"Malformed feed document: {exc}")
    raise UnsupportedFormat()
