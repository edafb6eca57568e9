from __future__ import annotations

import logging
from typing import Callable, Optional
from urllib.parse import urlparse

import httpx

from .html import find_link_tags, resolve_href
from .http import looks_like_image

logger = logging.getLogger(__name__)

_ICON_RELS = {"icon", "shortcut icon"}


class IconResolver:
    """Best-effort favicon lookup: ``/favicon.ico`` first, then the page's ``<link rel=icon>``."""

    def __init__(self, http: httpx.AsyncClient, max_bytes: int = 512 * 1024) -> None:
        self._http = http
        self._max_bytes = max_bytes

    async def resolve(self, feed_url: str) -> Optional[bytes]:
        try:
            host = urlparse(feed_url).netloc
        except ValueError:
            return None
        if not host:
            return None
        root = f"https://{host}"
        icon = await self._fetch_image(f"{root}/favicon.ico")
        if icon is not None:
            return icon
        page = await self._fetch_text(f"{root}/")
        if page is None:
            return None
        href = _icon_href(page)
        if href is None:
            logger.debug("No icon link found on %s", root)
            return None
        return await self._fetch_image(resolve_href(href, root))

    async def apply(self, feed_url: str, set_icon: Callable[[bytes], None]) -> None:
        """Call ``set_icon`` with the resolved icon; never raises."""
        try:
            icon = await self.resolve(feed_url)
            if icon is not None:
                set_icon(icon)
        except Exception:
            logger.debug("Icon resolution failed for %s", feed_url, exc_info=True)

    async def _fetch_image(self, url: str) -> Optional[bytes]:
        try:
            async with self._http.stream("GET", url) as response:
                if response.status_code != 200:
                    return None
                content_type = response.headers.get("content-type")
                content = bytearray()
                async for chunk in response.aiter_bytes():
                    content.extend(chunk)
                    if len(content) > self._max_bytes:
                        logger.debug("Icon at %s exceeds %d bytes", url, self._max_bytes)
                        return None
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("Icon fetch failed for %s: %s", url, exc)
            return None
        content = bytes(content)
        if not looks_like_image(content, content_type):
            return None
        return content

    async def _fetch_text(self, url: str) -> Optional[str]:
        try:
            response = await self._http.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("Page fetch failed for %s: %s", url, exc)
            return None
        if response.status_code != 200:
            return None
        return response.text


def _icon_href(page: str) -> Optional[str]:
    for attrs in find_link_tags(page):
        rel = " ".join(attrs.get("rel", "").lower().split())
        href = attrs.get("href")
        if rel in _ICON_RELS and href:
            return href
    return None
