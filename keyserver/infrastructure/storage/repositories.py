"""Infrastructure layer - Repository implementation."""

from collections.abc import Callable

from ...domain.entities import KeyRecord, NotificationConfig, NotificationState
from .store import KeyStore, StoreSnapshot


class KeyRepository:
    """Repository for key records backed by a whole-document store.

    The snapshot is loaded once on construction; ``flush`` writes it back in
    full. Records are kept in insertion order.
    """

    def __init__(self, store: KeyStore):
        self.store = store
        self._snapshot: StoreSnapshot = store.load()

    @property
    def state(self) -> NotificationState:
        return self._snapshot.state

    @property
    def config(self) -> NotificationConfig:
        return self._snapshot.config

    def flush(self) -> None:
        """Persist the full snapshot."""
        self.store.save(self._snapshot)

    def find_all(
        self, predicate: Callable[[KeyRecord], bool] | None = None
    ) -> list[KeyRecord]:
        """All records in insertion order, optionally filtered."""
        if predicate is None:
            return list(self._snapshot.records)
        return [r for r in self._snapshot.records if predicate(r)]

    def find(self, key: str) -> KeyRecord | None:
        """Find a record by its key string."""
        return next((r for r in self._snapshot.records if r.key == key), None)

    def find_first(self, predicate: Callable[[KeyRecord], bool]) -> KeyRecord | None:
        return next((r for r in self._snapshot.records if predicate(r)), None)

    def count(self, predicate: Callable[[KeyRecord], bool]) -> int:
        return sum(1 for r in self._snapshot.records if predicate(r))

    def insert(self, key: str, created_at: str) -> KeyRecord:
        """Append a new record with the next id. Ids are never reused."""
        record = KeyRecord(id=self._snapshot.next_id, key=key, created_at=created_at)
        self._snapshot.next_id += 1
        self._snapshot.records.append(record)
        return record

    def delete(self, key: str) -> bool:
        """Remove a record and its history."""
        for index, record in enumerate(self._snapshot.records):
            if record.key == key:
                del self._snapshot.records[index]
                return True
        return False
