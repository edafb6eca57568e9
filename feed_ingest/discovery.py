from __future__ import annotations

import logging
import posixpath
from typing import List, Optional, Sequence
from urllib.parse import urlparse

import httpx

from .config import DEFAULT_PROBE_PATHS
from .html import find_link_tags, resolve_href
from .http import validate_url

logger = logging.getLogger(__name__)

FEED_LINK_TYPES = {"application/rss+xml", "application/atom+xml", "application/feed+json"}


class FeedDiscoverer:
    """Find feed URLs for a website: ``<link>`` tags first, then conventional paths."""

    def __init__(self, http: httpx.AsyncClient, probe_paths: Optional[Sequence[str]] = None) -> None:
        self._http = http
        self._probe_paths = list(probe_paths or DEFAULT_PROBE_PATHS)

    async def discover(self, website_url: str) -> List[str]:
        page_url = site_entry_url(validate_url(website_url))
        page = await self._fetch_page(page_url)
        found = _feed_links(page, page_url) if page else []
        if found:
            return found
        return await self._probe(page_url)

    async def _fetch_page(self, url: str) -> Optional[str]:
        try:
            response = await self._http.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.info("Discovery fetch failed for %s: %s", url, exc)
            return None
        if response.status_code != 200:
            logger.info("Discovery fetch for %s returned HTTP %s", url, response.status_code)
            return None
        return response.text

    async def _probe(self, page_url: str) -> List[str]:
        parsed = urlparse(page_url)
        root = f"{parsed.scheme}://{parsed.netloc}"
        found: List[str] = []
        for path in self._probe_paths:
            candidate = f"{root}{path}"
            if await self._is_feed(candidate):
                found.append(candidate)
        return found

    async def _is_feed(self, url: str) -> bool:
        try:
            response = await self._http.head(url)
            if response.status_code == 405:
                response = await self._http.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("Probe failed for %s: %s", url, exc)
            return False
        content_type = response.headers.get("content-type", "").lower()
        return response.status_code == 200 and "xml" in content_type


def site_entry_url(url: str) -> str:
    """Collapse ``url`` to the site root unless its path names a file."""
    parsed = urlparse(url)
    _, extension = posixpath.splitext(parsed.path)
    if extension:
        return url
    return f"{parsed.scheme}://{parsed.netloc}/"


def _feed_links(page: str, base_url: str) -> List[str]:
    found: List[str] = []
    for attrs in find_link_tags(page):
        link_type = attrs.get("type", "").strip().lower()
        href = attrs.get("href")
        if link_type not in FEED_LINK_TYPES or not href:
            continue
        resolved = resolve_href(href, base_url)
        if resolved not in found:
            found.append(resolved)
    return found
