from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Protocol, Type, TypeVar

T = TypeVar("T")


class Store(Protocol):
    """Persistence collaborator used by ``FeedLibrary``.

    Implementations own all entity storage; the ingestion core never touches
    one directly.
    """

    def find(
        self,
        kind: Type[T],
        predicate: Optional[Callable[[T], bool]] = None,
        sort_key: Optional[Callable[[T], Any]] = None,
    ) -> List[T]:
        ...

    def insert(self, entity: object) -> None:
        ...

    def delete(self, entity: object) -> None:
        ...

    def save(self) -> None:
        ...


class InMemoryStore:
    """Store kept in process memory, grouped by entity type."""

    def __init__(self) -> None:
        self._entities: Dict[type, List[object]] = {}
        self.commits = 0

    def find(
        self,
        kind: Type[T],
        predicate: Optional[Callable[[T], bool]] = None,
        sort_key: Optional[Callable[[T], Any]] = None,
    ) -> List[T]:
        items = [item for item in self._entities.get(kind, []) if predicate is None or predicate(item)]
        if sort_key is not None:
            items.sort(key=sort_key)
        return items

    def insert(self, entity: object) -> None:
        bucket = self._entities.setdefault(type(entity), [])
        if not any(existing is entity for existing in bucket):
            bucket.append(entity)

    def delete(self, entity: object) -> None:
        bucket = self._entities.get(type(entity), [])
        self._entities[type(entity)] = [existing for existing in bucket if existing is not entity]

    def save(self) -> None:
        self.commits += 1
