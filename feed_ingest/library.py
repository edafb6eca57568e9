from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Union

from .client import FeedClient, ProgressCallback
from .dedupe import merge_articles
from .errors import DuplicateFeed, FeedError
from .http import validate_url
from .models import Category, NormalizedArticle, NormalizedFeed
from .store import Store

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_NAME = "Uncategorized"
DEFAULT_CATEGORY_COLOR = "808080"

class FeedLibrary:
    """Subscriptions, articles and categories on top of a ``Store``.

    This is the caller side of the ingestion core: it performs the duplicate
    subscription check, merges refreshed articles and owns every mutation of
    stored entities.
    """

    def __init__(self, store: Store, client: FeedClient, max_concurrent_refreshes: Optional[int] = None) -> None:
        self.store = store
        self.client = client
        self._max_concurrent = max_concurrent_refreshes or client.config.max_concurrent_refreshes

    # Feeds

    def feeds(self) -> List[NormalizedFeed]:
        return self.store.find(NormalizedFeed, sort_key=lambda feed: (feed.sort_order, feed.title))

    def find_feed(self, url: str) -> Optional[NormalizedFeed]:
        matches = self.store.find(NormalizedFeed, lambda feed: feed.url == url)
        return matches[0] if matches else None

    async def add_feed(
        self,
        url: str,
        category: Optional[Category] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> NormalizedFeed:
        url = validate_url(url)
        if self.find_feed(url) is not None:
            raise DuplicateFeed(url)
        feed, articles = await self.client.fetch_feed(url, category.id if category else None, progress)
        # Another add for the same URL may have finished while we were fetching.
        if self.find_feed(url) is not None:
            raise DuplicateFeed(url)
        feed.sort_order = max((existing.sort_order for existing in self.feeds()), default=-1) + 1
        self.store.insert(feed)
        self._attach(feed, merge_articles([], articles).to_insert)
        self.store.save()
        logger.info("Subscribed to %s with %d articles", url, len(feed.articles))
        self.client.schedule_icon(feed)
        return feed

    async def refresh_feed(self, feed: NormalizedFeed, progress: Optional[ProgressCallback] = None) -> int:
        """Fetch ``feed`` again and store only articles not seen before."""
        _, incoming = await self.client.fetch_feed(feed.url, feed.category_id, progress)
        result = merge_articles(feed.articles, incoming)
        self._attach(feed, result.to_insert)
        feed.last_updated = datetime.now(timezone.utc)
        self.store.save()
        logger.info("Refreshed %s: %d new articles", feed.url, result.inserted_count)
        return result.inserted_count

    async def refresh_all(self) -> Dict[str, Union[int, FeedError]]:
        """Refresh every feed concurrently; failures are reported per feed, not raised."""
        semaphore = asyncio.Semaphore(self._max_concurrent)

        async def refresh(feed: NormalizedFeed) -> Union[int, FeedError]:
            async with semaphore:
                try:
                    return await self.refresh_feed(feed)
                except FeedError as exc:
                    logger.warning("Refresh failed for %s: %s", feed.url, exc)
                    return exc

        feeds = self.feeds()
        outcomes = await asyncio.gather(*(refresh(feed) for feed in feeds))
        return {feed.url: outcome for feed, outcome in zip(feeds, outcomes)}

    def delete_feed(self, feed: NormalizedFeed) -> None:
        for article in list(feed.articles):
            self.store.delete(article)
        feed.articles.clear()
        self.store.delete(feed)
        self.store.save()

    def toggle_feed_starred(self, feed: NormalizedFeed) -> None:
        feed.is_starred = not feed.is_starred
        self.store.save()

    def _attach(self, feed: NormalizedFeed, articles: Sequence[NormalizedArticle]) -> None:
        for article in articles:
            article.feed_url = feed.url
            feed.articles.append(article)
            self.store.insert(article)

    # Articles

    def articles_for(self, feed: NormalizedFeed) -> List[NormalizedArticle]:
        """Articles of ``feed``, newest first; undated articles last."""
        oldest = datetime.min.replace(tzinfo=timezone.utc)
        return sorted(feed.articles, key=lambda article: article.published_at or oldest, reverse=True)

    def mark_read(self, article: NormalizedArticle, read: bool = True) -> None:
        article.is_read = read
        self.store.save()

    def mark_all_read(self, feed: NormalizedFeed) -> None:
        for article in feed.articles:
            article.is_read = True
        self.store.save()

    def toggle_starred(self, article: NormalizedArticle) -> None:
        article.is_starred = not article.is_starred
        self.store.save()

    def set_read_position(self, article: NormalizedArticle, position: float) -> None:
        article.last_read_position = float(position)
        self.store.save()

    def starred_articles(self) -> List[NormalizedArticle]:
        return self.store.find(NormalizedArticle, lambda article: article.is_starred)

    # Categories

    def categories(self) -> List[Category]:
        return self.store.find(Category, sort_key=lambda category: category.sort_order)

    def category_named(self, name: str) -> Optional[Category]:
        matches = self.store.find(Category, lambda category: category.name == name)
        return matches[0] if matches else None

    def ensure_default_category(self) -> Category:
        existing = self.category_named(DEFAULT_CATEGORY_NAME)
        if existing is not None:
            return existing
        return self.add_category(DEFAULT_CATEGORY_NAME, color_hex=DEFAULT_CATEGORY_COLOR)

    def add_category(self, name: str, color_hex: Optional[str] = None) -> Category:
        existing = self.category_named(name)
        if existing is not None:
            return existing
        sort_order = max((category.sort_order for category in self.categories()), default=0) + 1
        category = Category(name=name, color_hex=color_hex, sort_order=sort_order)
        self.store.insert(category)
        self.store.save()
        return category

    def update_category(
        self,
        category: Category,
        name: Optional[str] = None,
        color_hex: Optional[str] = None,
        is_expanded: Optional[bool] = None,
    ) -> None:
        if name is not None:
            category.name = name
        if color_hex is not None:
            category.color_hex = color_hex
        if is_expanded is not None:
            category.is_expanded = is_expanded
        self.store.save()

    def toggle_expanded(self, category: Category) -> None:
        category.is_expanded = not category.is_expanded
        self.store.save()

    def delete_category(self, category: Category) -> None:
        """Delete ``category``, moving its feeds to the default category."""
        if category.name == DEFAULT_CATEGORY_NAME:
            raise ValueError("The default category cannot be deleted")
        default = self.ensure_default_category()
        for feed in self.feeds_in(category):
            feed.category_id = default.id
        self.store.delete(category)
        self.store.save()

    def reorder_categories(self, categories: Sequence[Category]) -> None:
        for index, category in enumerate(categories):
            category.sort_order = index
        self.store.save()

    def move_feed(self, feed: NormalizedFeed, category: Category) -> None:
        feed.category_id = category.id
        self.store.save()

    def feeds_in(self, category: Category) -> List[NormalizedFeed]:
        return self.store.find(
            NormalizedFeed,
            lambda feed: feed.category_id == category.id,
            sort_key=lambda feed: (feed.sort_order, feed.title),
        )

    def uncategorized_feeds(self) -> List[NormalizedFeed]:
        return self.store.find(
            NormalizedFeed,
            lambda feed: feed.category_id is None,
            sort_key=lambda feed: (feed.sort_order, feed.title),
        )
