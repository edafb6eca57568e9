from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

DEFAULT_PROBE_PATHS = ["/feed", "/rss", "/atom.xml", "/feed.xml", "/rss.xml", "/index.xml"]
DEFAULT_USER_AGENT = "feed-ingest/0.1 (+https://github.com/feed-ingest)"


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(slots=True)
class IngestConfig:
    """Runtime configuration for feed fetching, discovery and icon lookup."""

    timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT
    max_concurrent_refreshes: int = 4
    probe_paths: List[str] = field(default_factory=lambda: list(DEFAULT_PROBE_PATHS))
    icon_max_bytes: int = 512 * 1024

    @classmethod
    def from_env(cls) -> "IngestConfig":
        import os

        return cls(
            timeout=_parse_float(os.getenv("FEED_INGEST_TIMEOUT"), "FEED_INGEST_TIMEOUT", default=30.0),
            user_agent=os.getenv("FEED_INGEST_USER_AGENT") or DEFAULT_USER_AGENT,
            max_concurrent_refreshes=_parse_positive_int(
                os.getenv("FEED_INGEST_MAX_CONCURRENT_REFRESHES"),
                "FEED_INGEST_MAX_CONCURRENT_REFRESHES",
                default=4,
            ),
            probe_paths=_split_csv(os.getenv("FEED_INGEST_PROBE_PATHS")) or list(DEFAULT_PROBE_PATHS),
            icon_max_bytes=_parse_positive_int(
                os.getenv("FEED_INGEST_ICON_MAX_BYTES"),
                "FEED_INGEST_ICON_MAX_BYTES",
                default=512 * 1024,
            ),
        )


def _parse_positive_int(value: Optional[str], name: str, default: int) -> int:
    if value is None or value.strip() == "":
        return default
    try:
        parsed = int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer if set") from None
    if parsed <= 0:
        raise ValueError(f"{name} must be positive")
    return parsed


def _parse_float(value: Optional[str], name: str, default: float) -> float:
    if value is None or value.strip() == "":
        return default
    try:
        parsed = float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number if set") from None
    if parsed <= 0:
        raise ValueError(f"{name} must be positive")
    return parsed
