from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple

WORDS_PER_MINUTE = 200
UNTITLED_FEED = "Untitled Feed"


def estimate_reading_time(text: Optional[str]) -> Optional[int]:
    """Minutes needed to read ``text`` at 200 words per minute, or None if it has no words."""
    if not text:
        return None
    words = len(text.split())
    if words == 0:
        return None
    return max(1, math.ceil(words / WORDS_PER_MINUTE))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class Category:
    """User-defined grouping of feeds."""

    name: str
    color_hex: Optional[str] = None
    sort_order: int = 0
    is_expanded: bool = True
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass(slots=True)
class NormalizedArticle:
    """Canonical article record shared by every feed format."""

    title: str
    link: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    author: Optional[str] = None
    published_at: Optional[datetime] = None
    is_read: bool = False
    is_starred: bool = False
    image_url: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    guid: Optional[str] = None
    last_read_position: Optional[float] = None
    feed_url: Optional[str] = None
    reading_time: Optional[int] = field(default=None, init=False)
    searchable_content: str = field(default="", init=False)

    def __post_init__(self) -> None:
        self._refresh_derived()

    def update_content(self, content: Optional[str] = None, description: Optional[str] = None) -> None:
        """Replace the body fields and recompute everything derived from them."""
        self.content = content
        self.description = description
        self._refresh_derived()

    def identity_key(self) -> Optional[Tuple[str, str]]:
        if self.guid:
            return ("guid", self.guid)
        if self.link:
            return ("link", self.link)
        return None

    def _refresh_derived(self) -> None:
        # Description only counts when there is no content at all.
        body = self.content if self.content is not None else self.description
        self.reading_time = estimate_reading_time(body)
        parts = [self.title, self.description, self.content, self.author]
        self.searchable_content = " ".join(part for part in parts if part)


@dataclass(slots=True)
class NormalizedFeed:
    """Canonical feed record; ``url`` is always the URL that was fetched."""

    title: str
    url: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    category_id: Optional[str] = None
    last_updated: datetime = field(default_factory=_utcnow)
    icon: Optional[bytes] = field(default=None, repr=False)
    sort_order: int = 0
    is_starred: bool = False
    articles: List[NormalizedArticle] = field(default_factory=list, repr=False)

    @property
    def unread_count(self) -> int:
        return sum(1 for article in self.articles if not article.is_read)
