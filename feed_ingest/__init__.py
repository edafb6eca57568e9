"""Feed ingestion: fetch, detect, normalize and dedupe RSS, Atom and JSON feeds."""

from .client import FeedClient, ProgressTracker
from .config import IngestConfig
from .dedupe import MergeResult, merge_articles
from .detector import FormatKind, parse_document
from .errors import DuplicateFeed, FeedError, InvalidURL, NetworkError, ParsingFailed, UnsupportedFormat
from .library import FeedLibrary
from .models import Category, NormalizedArticle, NormalizedFeed
from .normalizer import normalize
from .store import InMemoryStore, Store

__all__ = [
    "Category",
    "DuplicateFeed",
    "FeedClient",
    "FeedError",
    "FeedLibrary",
    "FormatKind",
    "IngestConfig",
    "InMemoryStore",
    "InvalidURL",
    "MergeResult",
    "NetworkError",
    "NormalizedArticle",
    "NormalizedFeed",
    "ParsingFailed",
    "ProgressTracker",
    "Store",
    "UnsupportedFormat",
    "merge_articles",
    "normalize",
    "parse_document",
]
