"""
Normalized in-memory cache keyed by entity id.

Stores patch it optimistically before a remote mutation and reconcile it
with the row the backend returns; a failed mutation restores the snapshot
taken before the patch.
"""
from contextlib import contextmanager
from typing import Callable, Dict, Generic, Iterable, Iterator, List, Optional, TypeVar

T = TypeVar("T")


class EntityCache(Generic[T]):
    """Ordered id -> record mapping"""

    def __init__(self, key: Callable[[T], str] = lambda item: item.id):
        self._key = key
        self._items: Dict[str, T] = {}

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, entity_id: str) -> bool:
        return entity_id in self._items

    @property
    def items(self) -> List[T]:
        return list(self._items.values())

    def get(self, entity_id: str) -> Optional[T]:
        return self._items.get(entity_id)

    def replace_all(self, items: Iterable[T]) -> None:
        self._items = {self._key(item): item for item in items}

    def upsert(self, item: T) -> None:
        """Replace in place when known, append otherwise."""
        self._items[self._key(item)] = item

    def discard(self, entity_id: str) -> Optional[T]:
        return self._items.pop(entity_id, None)

    def snapshot(self) -> Dict[str, T]:
        return dict(self._items)

    def restore(self, snapshot: Dict[str, T]) -> None:
        self._items = dict(snapshot)

    @contextmanager
    def optimistic(self) -> Iterator["EntityCache[T]"]:
        """
        Roll the cache back if the block raises

        Usage:
            with cache.optimistic():
                cache.upsert(patched)
                row = gateway.update(...)
                cache.upsert(record_from(row))
        """
        snapshot = self.snapshot()
        try:
            yield self
        except Exception:
            self.restore(snapshot)
            raise
