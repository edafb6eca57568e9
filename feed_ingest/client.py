from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Set, Tuple

import httpx

from .config import IngestConfig
from .detector import parse_document
from .discovery import FeedDiscoverer
from .errors import InvalidURL, NetworkError
from .http import build_http_client, validate_url
from .icons import IconResolver
from .models import NormalizedArticle, NormalizedFeed
from .normalizer import normalize

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], None]


@dataclass(slots=True)
class ProgressTracker:
    """Progress sink for ``FeedClient.fetch_feed``; advisory only."""

    value: float = 0.0
    stage: str = ""
    history: List[Tuple[float, str]] = field(default_factory=list)

    def __call__(self, value: float, stage: str) -> None:
        self.value = value
        self.stage = stage
        self.history.append((value, stage))


class FeedClient:
    """Entry point for fetching feeds, discovering them and resolving icons.

    Construct one per application (or per test); nothing is shared between
    instances. The underlying ``httpx.AsyncClient`` is closed by ``aclose``
    unless it was passed in by the caller.
    """

    def __init__(self, config: Optional[IngestConfig] = None, http: Optional[httpx.AsyncClient] = None) -> None:
        self.config = config or IngestConfig.from_env()
        self._owns_http = http is None
        self._http = http if http is not None else build_http_client(self.config)
        self._icons = IconResolver(self._http, max_bytes=self.config.icon_max_bytes)
        self._discoverer = FeedDiscoverer(self._http, probe_paths=self.config.probe_paths)
        self._background: Set[asyncio.Task] = set()

    async def __aenter__(self) -> "FeedClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        if self._owns_http:
            await self._http.aclose()

    async def fetch_feed(
        self,
        url: str,
        category_id: Optional[str] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> Tuple[NormalizedFeed, List[NormalizedArticle]]:
        """Fetch ``url`` once, detect its format and normalize it.

        Raises ``InvalidURL``, ``NetworkError`` or ``ParsingFailed``. Nothing is
        retried. Cancelling the awaiting task closes the connection and the
        normalizer never sees a partial payload.
        """
        url = validate_url(url)
        report = progress or _ignore_progress
        report(0.0, "Fetching feed")
        payload = await self._download(url)
        report(0.3, "Parsing feed")
        document = await asyncio.to_thread(parse_document, payload)
        report(0.5, f"Processing {document.kind.value} feed")
        feed, articles = normalize(document, url, category_id)
        report(0.8, "Post-processing")
        logger.info("Fetched %s (%s): %d articles", url, document.kind.value, len(articles))
        report(1.0, "Done")
        return feed, articles

    async def discover_feeds(self, website_url: str) -> List[str]:
        """Return feed URLs advertised by or conventionally hosted on a site; [] when none."""
        return await self._discoverer.discover(website_url)

    async def resolve_icon(self, feed_url: str, set_icon: Callable[[bytes], None]) -> None:
        await self._icons.apply(feed_url, set_icon)

    def schedule_icon(self, feed: NormalizedFeed) -> asyncio.Task:
        """Resolve ``feed``'s icon in the background; the result lands on ``feed.icon``."""
        task = asyncio.create_task(self._resolve_icon_quietly(feed))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _resolve_icon_quietly(self, feed: NormalizedFeed) -> None:
        def set_icon(data: bytes) -> None:
            feed.icon = data

        await self._icons.apply(feed.url, set_icon)

    async def _download(self, url: str) -> bytes:
        try:
            response = await self._http.get(url)
            response.raise_for_status()
        except httpx.InvalidURL as exc:
            raise InvalidURL(url) from exc
        except httpx.HTTPError as exc:
            logger.warning("Feed fetch failed for %s: %s", url, exc)
            raise NetworkError(url, exc) from exc
        return response.content


def _ignore_progress(value: float, stage: str) -> None:
    return None
