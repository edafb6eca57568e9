from __future__ import annotations

from typing import Optional
from urllib.parse import urlparse

import httpx

from .config import IngestConfig
from .errors import InvalidURL

_IMAGE_SIGNATURES = (
    b"\x89PNG\r\n\x1a\n",
    b"GIF87a",
    b"GIF89a",
    b"\xff\xd8\xff",
    b"\x00\x00\x01\x00",  # ICO
    b"\x00\x00\x02\x00",  # CUR
    b"BM",
)


def build_http_client(config: IngestConfig) -> httpx.AsyncClient:
    """Create the shared async client used for every network call."""
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=httpx.Timeout(config.timeout),
        headers={
            "User-Agent": config.user_agent,
            "Accept": (
                "application/rss+xml, application/atom+xml, application/feed+json, "
                "application/xml;q=0.9, text/html;q=0.8, */*;q=0.5"
            ),
        },
    )


def looks_like_image(content: bytes, content_type: Optional[str] = None) -> bool:
    """Return True when ``content`` carries a recognisable image signature."""
    if not content:
        return False
    if content.startswith(_IMAGE_SIGNATURES):
        return True
    if content[:4] == b"RIFF" and content[8:12] == b"WEBP":
        return True
    if content_type and "svg" in content_type.lower():
        return b"<svg" in content[:1024].lower()
    return False


def validate_url(value: str) -> str:
    """Return ``value`` stripped, or raise ``InvalidURL`` unless it is an absolute http(s) URL."""
    candidate = (value or "").strip()
    try:
        parsed = urlparse(candidate)
    except ValueError:
        raise InvalidURL(value) from None
    if parsed.scheme.lower() not in {"http", "https"} or not parsed.netloc:
        raise InvalidURL(value)
    return candidate
