"""Persistence collaborator: record/settings stores plus export and import.

Stores are key/value shaped (one JSON document per key) and come in three
flavors sharing the :class:`RecordStore` protocol:

- ``MemoryStore``: process-local, serializes through JSON so callers never
  share mutable state with the store.
- ``JsonFileStore``: ``<root>/finance_tracker_data.json`` and
  ``<root>/finance_tracker_settings.json``. Writes target ``.tmp`` first and
  then ``os.replace`` into place.
- ``SqlStore``: the ``ft_storage`` table through SQLAlchemy (see
  :mod:`finance_tracker.db`).

Load failures (missing, unreadable, malformed) are logged and fall back to an
empty collection or default settings. Save failures are logged and reported
as ``False``; nothing is retried.

Export produces a versioned :class:`~finance_tracker.models.ExportDocument`.
Import is all-or-nothing: any malformed record rejects the whole batch with
a message naming the first offending index and field.
"""

from __future__ import annotations

import contextlib
import json
import math
import os
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from pydantic import TypeAdapter, ValidationError
from sqlalchemy.exc import SQLAlchemyError

from .logging_setup import get_logger
from .models import (
    EXPORT_VERSION,
    ExportDocument,
    ImportResult,
    Settings,
    TransactionRecord,
)
from .validators import parse_calendar_date

_logger = get_logger("finance_tracker.storage")

RECORDS_KEY = "finance_tracker_data"
SETTINGS_KEY = "finance_tracker_settings"

_RECORDS_ADAPTER: TypeAdapter[list[TransactionRecord]] = TypeAdapter(list[TransactionRecord])


class RecordStore(Protocol):
    def load_records(self) -> list[TransactionRecord]: ...

    def save_records(self, records: Sequence[TransactionRecord]) -> bool: ...

    def load_settings(self) -> Settings: ...

    def save_settings(self, settings: Settings) -> bool: ...

    def clear_all_data(self) -> bool: ...


# ----------------------------------------------------------------------------
# Key/value store base
# ----------------------------------------------------------------------------


class _KeyValueStore:
    """Shared load/save policy over three backend primitives.

    Subclasses implement ``_read`` (``None`` when the key is absent),
    ``_write`` and ``_remove`` and list the exception types their backend
    raises in ``_errors``.
    """

    _errors: tuple[type[BaseException], ...] = (OSError, ValueError, TypeError)

    def _read(self, key: str) -> Any | None:
        raise NotImplementedError

    def _write(self, key: str, payload: Any) -> None:
        raise NotImplementedError

    def _remove(self, key: str) -> None:
        raise NotImplementedError

    def load_records(self) -> list[TransactionRecord]:
        try:
            raw = self._read(RECORDS_KEY)
            return [] if raw is None else _RECORDS_ADAPTER.validate_python(raw)
        except self._errors as e:
            _logger.error("storage:load_records_failed error=%s", e.__class__.__name__)
            return []

    def save_records(self, records: Sequence[TransactionRecord]) -> bool:
        try:
            self._write(RECORDS_KEY, [r.to_json() for r in records])
        except self._errors as e:
            _logger.error(
                "storage:save_records_failed count=%d error=%s", len(records), e.__class__.__name__
            )
            return False
        return True

    def load_settings(self) -> Settings:
        try:
            raw = self._read(SETTINGS_KEY)
            return Settings() if raw is None else Settings.model_validate(raw)
        except self._errors as e:
            _logger.error("storage:load_settings_failed error=%s", e.__class__.__name__)
            return Settings()

    def save_settings(self, settings: Settings) -> bool:
        try:
            self._write(SETTINGS_KEY, settings.to_json())
        except self._errors as e:
            _logger.error("storage:save_settings_failed error=%s", e.__class__.__name__)
            return False
        return True

    def clear_all_data(self) -> bool:
        """Remove all records; settings are kept."""

        try:
            self._remove(RECORDS_KEY)
        except self._errors as e:
            _logger.error("storage:clear_failed error=%s", e.__class__.__name__)
            return False
        return True


class MemoryStore(_KeyValueStore):
    """Dict-backed store holding serialized JSON text per key."""

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, str] = {}
        for key, payload in (initial or {}).items():
            self._write(key, payload)

    def _read(self, key: str) -> Any | None:
        text = self._data.get(key)
        return None if text is None else json.loads(text)

    def _write(self, key: str, payload: Any) -> None:
        self._data[key] = json.dumps(payload)

    def _remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore(_KeyValueStore):
    """One JSON file per key under ``root``."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(root).expanduser().resolve()

    def _path(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def _read(self, key: str) -> Any | None:
        path = self._path(key)
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    def _write(self, key: str, payload: Any) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            tmp.write_text(
                json.dumps(payload, ensure_ascii=False, separators=(",", ":")),
                encoding="utf-8",
            )
            os.replace(tmp, path)
        except Exception:
            with contextlib.suppress(FileNotFoundError):
                tmp.unlink()
            raise

    def _remove(self, key: str) -> None:
        with contextlib.suppress(FileNotFoundError):
            self._path(key).unlink()


class SqlStore(_KeyValueStore):
    """Key/value documents in the ``ft_storage`` table."""

    _errors = (SQLAlchemyError, ValueError, TypeError)

    def __init__(self, database_url: str) -> None:
        from .db import make_engine  # local import keeps SQLAlchemy ORM setup lazy

        self.database_url = database_url
        self._engine = make_engine(database_url)

    def _read(self, key: str) -> Any | None:
        from .db import FtStorageEntry, session_scope

        with session_scope(self._engine) as session:
            row = session.get(FtStorageEntry, key)
            return None if row is None else row.value

    def _write(self, key: str, payload: Any) -> None:
        from .db import FtStorageEntry, session_scope

        with session_scope(self._engine) as session:
            session.merge(FtStorageEntry(key=key, value=payload, updated_at=datetime.now(UTC)))

    def _remove(self, key: str) -> None:
        from .db import FtStorageEntry, session_scope

        with session_scope(self._engine) as session:
            row = session.get(FtStorageEntry, key)
            if row is not None:
                session.delete(row)


def _default_data_dir() -> Path:
    """Return the data directory.

    Default: ``./.finance_tracker`` under the current working directory.
    Override: ``FINANCE_TRACKER_DATA_DIR`` environment variable.
    """

    root = os.getenv("FINANCE_TRACKER_DATA_DIR")
    if root and root.strip():
        return Path(root).expanduser().resolve()
    return (Path.cwd() / ".finance_tracker").resolve()


def open_store(
    *, data_dir: str | os.PathLike[str] | None = None, database_url: str | None = None
) -> RecordStore:
    """Resolve the configured store.

    An explicit ``database_url`` (or ``DATABASE_URL``) selects :class:`SqlStore`;
    otherwise a :class:`JsonFileStore` under ``data_dir`` (or the default
    directory) is used.
    """

    url = database_url or os.getenv("DATABASE_URL")
    if url and url.strip():
        _logger.debug("storage:open backend=sql")
        return SqlStore(url.strip())
    root = Path(data_dir) if data_dir is not None else _default_data_dir()
    _logger.debug("storage:open backend=json root=%s", os.fspath(root))
    return JsonFileStore(root)


# ----------------------------------------------------------------------------
# Export / import
# ----------------------------------------------------------------------------


def _iso_timestamp(moment: datetime) -> str:
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def export_data(store: RecordStore, *, now: datetime | None = None) -> ExportDocument:
    """Snapshot the store's records and settings into a versioned document."""

    return ExportDocument(
        records=store.load_records(),
        settings=store.load_settings(),
        export_date=_iso_timestamp(now or datetime.now(UTC)),
        version=EXPORT_VERSION,
    )


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and bool(v)


def _is_valid_amount(v: Any) -> bool:
    if isinstance(v, bool) or not isinstance(v, int | float):
        return False
    try:
        return math.isfinite(v) and v >= 0
    except OverflowError:
        # int too large to convert to float
        return False


def _record_error(i: int, raw: Any, seen_ids: set[str]) -> str | None:
    if not isinstance(raw, Mapping):
        return f"Record {i} is not an object"
    if not _is_non_empty_str(raw.get("id")):
        return f"Record {i} missing valid id"
    if raw["id"] in seen_ids:
        return f"Record {i} has duplicate id"
    if not _is_non_empty_str(raw.get("description")):
        return f"Record {i} missing valid description"
    if not _is_valid_amount(raw.get("amount")):
        return f"Record {i} has invalid amount"
    if not _is_non_empty_str(raw.get("category")):
        return f"Record {i} missing valid category"
    date_value = raw.get("date")
    if not isinstance(date_value, str) or parse_calendar_date(date_value) is None:
        return f"Record {i} has invalid date"
    return None


def _parse_import(data: Any) -> tuple[list[TransactionRecord], Settings | None] | str:
    """Return parsed ``(records, settings)`` or the first error message."""

    if not isinstance(data, Mapping):
        return "Invalid data format"
    raw_records = data.get("records")
    if not isinstance(raw_records, list):
        return "Records must be an array"

    records: list[TransactionRecord] = []
    seen_ids: set[str] = set()
    for i, raw in enumerate(raw_records):
        err = _record_error(i, raw, seen_ids)
        if err is not None:
            return err
        try:
            records.append(TransactionRecord.model_validate(raw))
        except ValidationError:
            return f"Record {i} has invalid metadata"
        seen_ids.add(raw["id"])

    settings: Settings | None = None
    if data.get("settings") is not None:
        try:
            settings = Settings.model_validate(data["settings"])
        except ValidationError:
            return "Invalid settings"
    return records, settings


def validate_import_data(data: Any) -> ImportResult:
    """Check an import document without writing anything."""

    parsed = _parse_import(data)
    if isinstance(parsed, str):
        return ImportResult(success=False, error=parsed)
    return ImportResult(success=True, count=len(parsed[0]))


def import_data(store: RecordStore, data: Any) -> ImportResult:
    """Replace the stored records (and settings, when present) with ``data``."""

    parsed = _parse_import(data)
    if isinstance(parsed, str):
        _logger.info("storage:import_rejected error=%r", parsed)
        return ImportResult(success=False, error=parsed)

    records, settings = parsed
    previous = store.load_records()
    if not store.save_records(records):
        return ImportResult(success=False, error="Failed to save records")
    if settings is not None and not store.save_settings(settings):
        # Put the previous records back so a failed import leaves the store as it was.
        store.save_records(previous)
        return ImportResult(success=False, error="Failed to save settings")
    _logger.info("storage:import_ok count=%d", len(records))
    return ImportResult(success=True, count=len(records))


__all__ = [
    "RECORDS_KEY",
    "SETTINGS_KEY",
    "RecordStore",
    "MemoryStore",
    "JsonFileStore",
    "SqlStore",
    "open_store",
    "export_data",
    "validate_import_data",
    "import_data",
]
