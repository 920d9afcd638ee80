"""Pytest configuration for test isolation.

The CLI and :func:`finance_tracker.storage.open_store` resolve their storage
location from the environment (``FINANCE_TRACKER_DATA_DIR``, falling back to
``./.finance_tracker``; ``DATABASE_URL`` switches to the SQL store). Tests run
in the same working tree, so a leftover data file or a developer's
``DATABASE_URL`` would leak state between tests.

To keep tests hermetic we point the data directory at a per-test temporary
directory and drop ``DATABASE_URL`` via an autouse fixture.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

# Make `packages/` importable (finance_tracker) and `tests/` (helpers).
_TESTS_DIR = Path(__file__).resolve().parent
_PKG_DIR = _TESTS_DIR.parent / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_TESTS_DIR)] if p not in sys.path]


@pytest.fixture(autouse=True)
def _isolate_data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Force a per-test data root so tests don't share on-disk state."""

    data_root = tmp_path / "data"
    data_root.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("FINANCE_TRACKER_DATA_DIR", os.fspath(data_root))
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("FINANCE_TRACKER_LOG_LEVEL", raising=False)
    return data_root
