"""Map RSS, Atom and JSON Feed documents onto one article schema.

Everything here is a pure transform: no I/O, and the only non-determinism
(``NormalizedFeed.last_updated``) comes from the injectable ``now`` argument.
"""

from __future__ import annotations

import calendar
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from .detector import AtomDocument, JSONFeedDocument, ParsedDocument, RSSDocument
from .html import extract_first_image
from .models import UNTITLED_FEED, NormalizedArticle, NormalizedFeed

NormalizedResult = Tuple[NormalizedFeed, List[NormalizedArticle]]


def normalize(
    document: ParsedDocument,
    url: str,
    category_id: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> NormalizedResult:
    timestamp = now or datetime.now(timezone.utc)
    if isinstance(document, RSSDocument):
        feed, articles = _normalize_rss(document, url)
    elif isinstance(document, AtomDocument):
        feed, articles = _normalize_atom(document, url)
    elif isinstance(document, JSONFeedDocument):
        feed, articles = _normalize_json(document, url)
    else:
        raise TypeError(f"Unknown document type: {type(document).__name__}")
    feed.category_id = category_id
    feed.last_updated = timestamp
    return feed, articles


def _normalize_rss(document: RSSDocument, url: str) -> NormalizedResult:
    meta = document.feed
    feed = NormalizedFeed(
        title=_feed_title(meta),
        url=url,
        description=_text(meta.get("subtitle")),
        image_url=_feed_image(meta),
    )
    articles: List[NormalizedArticle] = []
    for entry in document.items:
        title = _text(entry.get("title"))
        if title is None:
            continue
        encoded = _non_empty(_first_content(entry))
        description = _text(entry.get("summary"))
        # feedparser fills summary from content:encoded when <description> is missing.
        if encoded is not None and description == encoded.strip():
            description = None
        content = encoded or _non_empty(description)
        articles.append(
            NormalizedArticle(
                title=title,
                link=_text(entry.get("link")),
                description=description,
                content=content,
                author=_text(entry.get("author")),
                published_at=_from_struct_time(entry.get("published_parsed")),
                image_url=_media_content_url(entry) or extract_first_image(content),
                tags=_category_terms(entry),
                guid=_text(entry.get("id")),
                feed_url=url,
            )
        )
    return feed, articles


def _normalize_atom(document: AtomDocument, url: str) -> NormalizedResult:
    meta = document.feed
    feed = NormalizedFeed(
        title=_feed_title(meta),
        url=url,
        description=_text(meta.get("subtitle")),
        image_url=_text(meta.get("logo")) or _feed_image(meta),
    )
    articles: List[NormalizedArticle] = []
    for entry in document.items:
        title = _text(entry.get("title"))
        if title is None:
            continue
        summary = _text(entry.get("summary"))
        content = _non_empty(_first_content(entry)) or _non_empty(summary)
        published = _from_struct_time(entry.get("published_parsed")) or _from_struct_time(
            entry.get("updated_parsed")
        )
        articles.append(
            NormalizedArticle(
                title=title,
                link=_atom_link(entry),
                description=summary,
                content=content,
                author=_atom_author(entry),
                published_at=published,
                image_url=extract_first_image(content),
                tags=_category_terms(entry),
                guid=_text(entry.get("id")),
                feed_url=url,
            )
        )
    return feed, articles


def _normalize_json(document: JSONFeedDocument, url: str) -> NormalizedResult:
    meta = document.feed
    feed = NormalizedFeed(
        title=_feed_title(meta),
        url=url,
        description=_text(meta.get("description")),
        image_url=_text(meta.get("icon")),
    )
    articles: List[NormalizedArticle] = []
    for item in document.items:
        title = _text(item.get("title"))
        if title is None:
            continue
        summary = _text(item.get("summary"))
        content = (
            _non_empty(item.get("content_html"))
            or _non_empty(item.get("content_text"))
            or _non_empty(summary)
        )
        published = _from_iso(item.get("date_published")) or _from_iso(item.get("date_modified"))
        guid = item.get("id")
        articles.append(
            NormalizedArticle(
                title=title,
                link=_text(item.get("url")),
                description=summary,
                content=content,
                author=_json_author(item),
                published_at=published,
                image_url=_text(item.get("image")) or extract_first_image(content),
                tags=_json_tags(item),
                guid=str(guid) if guid not in (None, "") else None,
                feed_url=url,
            )
        )
    return feed, articles


def _text(value: Any) -> Optional[str]:
    """Return ``value`` stripped, or None when it is missing, blank or not a string."""
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _non_empty(value: Any) -> Optional[str]:
    # Bodies are kept verbatim; only emptiness is checked.
    if isinstance(value, str) and value.strip():
        return value
    return None


def _feed_title(meta: Mapping[str, Any]) -> str:
    return _text(meta.get("title")) or UNTITLED_FEED


def _feed_image(meta: Mapping[str, Any]) -> Optional[str]:
    image = meta.get("image")
    if isinstance(image, Mapping):
        return _text(image.get("href")) or _text(image.get("url"))
    return None


def _first_content(entry: Mapping[str, Any]) -> Optional[str]:
    content = entry.get("content")
    if isinstance(content, list):
        for block in content:
            if isinstance(block, Mapping):
                value = block.get("value")
                if isinstance(value, str) and value.strip():
                    return value
        return None
    if isinstance(content, Mapping):
        value = content.get("value")
        return value if isinstance(value, str) else None
    return None


def _media_content_url(entry: Mapping[str, Any]) -> Optional[str]:
    for media in entry.get("media_content") or []:
        if isinstance(media, Mapping):
            media_url = _text(media.get("url"))
            if media_url:
                return media_url
    return None


def _category_terms(entry: Mapping[str, Any]) -> List[str]:
    terms: List[str] = []
    for tag in entry.get("tags") or []:
        if isinstance(tag, Mapping):
            term = _text(tag.get("term"))
            if term:
                terms.append(term)
    return terms


def _atom_link(entry: Mapping[str, Any]) -> Optional[str]:
    for link in entry.get("links") or []:
        if isinstance(link, Mapping):
            href = _text(link.get("href"))
            if href:
                return href
    return _text(entry.get("link"))


def _atom_author(entry: Mapping[str, Any]) -> Optional[str]:
    return _first_name(entry.get("authors")) or _text(entry.get("author"))


def _json_tags(item: Mapping[str, Any]) -> List[str]:
    tags = item.get("tags")
    if not isinstance(tags, list):
        return []
    return [tag for tag in tags if isinstance(tag, str)]


def _json_author(item: Mapping[str, Any]) -> Optional[str]:
    author = item.get("author")
    if isinstance(author, Mapping):
        name = _text(author.get("name"))
        if name:
            return name
    return _first_name(item.get("authors"))


def _first_name(people: Any) -> Optional[str]:
    if not isinstance(people, Iterable) or isinstance(people, (str, bytes)):
        return None
    for person in people:
        if isinstance(person, Mapping):
            name = _text(person.get("name"))
            if name:
                return name
    return None


def _from_struct_time(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(calendar.timegm(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


def _from_iso(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
