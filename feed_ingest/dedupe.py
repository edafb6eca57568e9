from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Set

from .models import NormalizedArticle


@dataclass(slots=True)
class MergeResult:
    to_insert: List[NormalizedArticle] = field(default_factory=list)

    @property
    def inserted_count(self) -> int:
        return len(self.to_insert)


def merge_articles(
    existing: Iterable[NormalizedArticle],
    incoming: Iterable[NormalizedArticle],
) -> MergeResult:
    """Select the incoming articles that are not already stored.

    A matching guid marks a duplicate even when the link changed. Without a
    guid match, a matching link marks a duplicate. Articles with neither a
    guid nor a link are always new; there is no fuzzy matching.
    """
    guids: Set[str] = set()
    links: Set[str] = set()
    for article in existing:
        _remember(article, guids, links)

    result = MergeResult()
    for article in incoming:
        if article.guid and article.guid in guids:
            continue
        if article.link and article.link in links:
            continue
        result.to_insert.append(article)
        # Repeats inside one batch are duplicates too.
        _remember(article, guids, links)
    return result


def _remember(article: NormalizedArticle, guids: Set[str], links: Set[str]) -> None:
    if article.guid:
        guids.add(article.guid)
    if article.link:
        links.add(article.link)
