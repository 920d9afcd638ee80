"""In-memory transaction repository with write-through persistence.

The repository is the exclusive owner of the record collection for a
session. It loads once from a :class:`~finance_tracker.storage.RecordStore`,
and every mutation immediately saves the full collection back (full replace,
no partial writes).

Save failures are reported on the returned
:class:`~finance_tracker.models.WriteResult` (``persisted=False``); the
in-memory change is kept and the caller decides whether to retry.
"""

from __future__ import annotations

import secrets
import time
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from .logging_setup import get_logger
from .models import TransactionRecord, WriteResult
from .storage import RecordStore

_logger = get_logger("finance_tracker.repository")

_EDITABLE_FIELDS: tuple[str, ...] = ("description", "amount", "category", "date")


def generate_id() -> str:
    """Return ``txn_<epoch-ms>_<random>``; collisions are negligible, not impossible."""

    return f"txn_{time.time_ns() // 1_000_000}_{secrets.token_hex(4)}"


def _utc_now() -> datetime:
    return datetime.now(UTC)


class RecordRepository:
    """Owns the session's records; all mutations go through this object."""

    def __init__(
        self,
        store: RecordStore,
        *,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or _utc_now
        self._id_factory = id_factory or generate_id
        self._records: list[TransactionRecord] = []
        self.reload()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def records(self) -> tuple[TransactionRecord, ...]:
        return tuple(self._records)

    def list(self) -> list[TransactionRecord]:
        """Return a snapshot copy; mutating it does not affect the repository."""

        return list(self._records)

    def get_by_id(self, record_id: str) -> TransactionRecord | None:
        for r in self._records:
            if r.id == record_id:
                return r
        return None

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return any(r.id == record_id for r in self._records)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def reload(self) -> None:
        self._records = list(self._store.load_records())
        _logger.debug("repository:loaded count=%d", len(self._records))

    def add(self, data: Mapping[str, Any]) -> WriteResult:
        """Create a record from validated ``data`` and persist the collection."""

        now = self._clock()
        record = TransactionRecord(
            id=self._new_id(),
            description=data["description"],
            amount=data["amount"],
            category=data["category"],
            date=data["date"],
            created_at=now,
            updated_at=now,
        )
        self._records.append(record)
        _logger.debug("repository:add id=%s", record.id)
        return self._persist(record)

    def update(self, record_id: str, data: Mapping[str, Any]) -> WriteResult:
        """Replace the editable fields of ``record_id``; ``id``/``created_at`` are kept."""

        idx = self._index_of(record_id)
        if idx is None:
            _logger.debug("repository:update_missing id=%s", record_id)
            return WriteResult(ok=False, error=f"Record not found: {record_id}")

        changes: dict[str, Any] = {f: data[f] for f in _EDITABLE_FIELDS}
        changes["updated_at"] = self._clock()
        current = self._records[idx]
        updated = TransactionRecord.model_validate(
            {**current.model_dump(), **changes}
        )
        self._records[idx] = updated
        _logger.debug("repository:update id=%s", record_id)
        return self._persist(updated)

    def delete(self, record_id: str) -> WriteResult:
        idx = self._index_of(record_id)
        if idx is None:
            _logger.debug("repository:delete_missing id=%s", record_id)
            return WriteResult(ok=False, error=f"Record not found: {record_id}")
        removed = self._records.pop(idx)
        _logger.debug("repository:delete id=%s", record_id)
        return self._persist(removed)

    def replace_all(self, records: Iterable[TransactionRecord]) -> WriteResult:
        """Swap in a whole new collection (import/clear) and persist it."""

        self._records = list(records)
        return self._persist(None)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _index_of(self, record_id: str) -> int | None:
        for i, r in enumerate(self._records):
            if r.id == record_id:
                return i
        return None

    def _new_id(self) -> str:
        existing = {r.id for r in self._records}
        while True:
            candidate = self._id_factory()
            if candidate not in existing:
                return candidate

    def _persist(self, record: TransactionRecord | None) -> WriteResult:
        saved = self._store.save_records(list(self._records))
        if not saved:
            _logger.warning("repository:save_failed count=%d", len(self._records))
            return WriteResult(
                ok=True, record=record, persisted=False, error="Failed to save records"
            )
        return WriteResult(ok=True, record=record, persisted=True)


__all__ = ["RecordRepository", "generate_id"]
