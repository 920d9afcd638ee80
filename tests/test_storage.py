from __future__ import annotations

import json
import os
from datetime import UTC, datetime
from pathlib import Path

import pytest
from helpers.stores import FailingStore, make_record, raw_record

from finance_tracker.models import DEFAULT_CATEGORIES, Settings
from finance_tracker.storage import (
    RECORDS_KEY,
    SETTINGS_KEY,
    JsonFileStore,
    MemoryStore,
    SqlStore,
    export_data,
    import_data,
    open_store,
    validate_import_data,
)


@pytest.fixture(params=["memory", "json", "sql"])
def store(request, tmp_path: Path):
    if request.param == "memory":
        return MemoryStore()
    if request.param == "json":
        return JsonFileStore(tmp_path / "json-store")
    return SqlStore(f"sqlite+pysqlite:///{tmp_path / 'ft.db'}")


# ---- store contract --------------------------------------------------------


def test_empty_store_defaults(store):
    assert store.load_records() == []
    settings = store.load_settings()
    assert settings == Settings()
    assert settings.base_currency == "USD"
    assert settings.conversion_rates == {"EUR": 1.09, "GBP": 1.27}
    assert settings.categories == list(DEFAULT_CATEGORIES)
    assert not settings.budget_enabled


def test_records_round_trip(store):
    records = [make_record("txn_1"), make_record("txn_2", description="Tea", amount=3.0)]
    assert store.save_records(records)
    assert store.load_records() == records


def test_settings_round_trip(store):
    s = Settings(baseCurrency="EUR", categories=[*DEFAULT_CATEGORIES, "Gym"], budgetCap=250)
    assert store.save_settings(s)
    assert store.load_settings() == s


def test_clear_removes_records_only(store):
    store.save_records([make_record("txn_1")])
    s = Settings(budgetCap=100)
    store.save_settings(s)
    assert store.clear_all_data()
    assert store.load_records() == []
    assert store.load_settings() == s
    # Clearing twice is fine
    assert store.clear_all_data()


def test_json_store_files_and_camel_case(tmp_path: Path):
    store = JsonFileStore(tmp_path)
    store.save_records([make_record("txn_1")])
    data = json.loads((tmp_path / f"{RECORDS_KEY}.json").read_text(encoding="utf-8"))
    assert data[0]["id"] == "txn_1"
    assert "createdAt" in data[0] and "updatedAt" in data[0]
    assert not list(tmp_path.glob("*.tmp"))


def test_json_store_malformed_file_falls_back(tmp_path: Path):
    (tmp_path / f"{RECORDS_KEY}.json").write_text("{not json", encoding="utf-8")
    (tmp_path / f"{SETTINGS_KEY}.json").write_text('{"budgetCap": -1}', encoding="utf-8")
    store = JsonFileStore(tmp_path)
    assert store.load_records() == []
    assert store.load_settings() == Settings()


def test_json_store_unwritable_root_reports_failure(tmp_path: Path):
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    store = JsonFileStore(blocker / "sub")
    assert store.save_records([make_record("txn_1")]) is False


def test_memory_store_does_not_alias_callers():
    store = MemoryStore()
    records = [make_record("txn_1")]
    store.save_records(records)
    records.clear()
    assert len(store.load_records()) == 1


def test_settings_fill_in_missing_default_categories():
    s = Settings.model_validate({"categories": ["Gym", "Food", "Gym", " "]})
    assert s.categories[:2] == ["Gym", "Food"]
    assert set(DEFAULT_CATEGORIES) <= set(s.categories)
    assert s.categories.count("Gym") == 1


def test_open_store_selection(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    assert isinstance(open_store(data_dir=tmp_path), JsonFileStore)
    env_store = open_store()
    assert isinstance(env_store, JsonFileStore)
    assert env_store.root == Path(os.environ["FINANCE_TRACKER_DATA_DIR"]).resolve()

    url = f"sqlite+pysqlite:///{tmp_path / 'env.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    assert isinstance(open_store(), SqlStore)


# ---- export ----------------------------------------------------------------


def test_export_document_shape():
    store = MemoryStore()
    store.save_records([make_record("txn_1")])
    store.save_settings(Settings(budgetCap=50))
    doc = export_data(store, now=datetime(2025, 9, 20, 8, 30, 1, 250000, tzinfo=UTC)).to_json()
    assert set(doc) == {"records", "settings", "exportDate", "version"}
    assert doc["version"] == "1.0"
    assert doc["exportDate"] == "2025-09-20T08:30:01.250Z"
    assert doc["records"][0]["id"] == "txn_1"
    assert doc["settings"]["budgetCap"] == 50


def test_export_then_import_restores_store():
    source = MemoryStore()
    source.save_records([make_record("txn_1"), make_record("txn_2", category="Books")])
    source.save_settings(Settings(baseCurrency="GBP", budgetCap=75))
    doc = json.loads(json.dumps(export_data(source).to_json()))

    target = MemoryStore()
    target.save_records([make_record("txn_old")])
    result = import_data(target, doc)
    assert result.success and result.count == 2
    assert target.load_records() == source.load_records()
    assert target.load_settings() == source.load_settings()


# ---- import validation -----------------------------------------------------


@pytest.mark.parametrize(
    ("data", "error"),
    [
        ([], "Invalid data format"),
        ("records", "Invalid data format"),
        ({}, "Records must be an array"),
        ({"records": {"0": {}}}, "Records must be an array"),
        ({"records": ["x"]}, "Record 0 is not an object"),
        ({"records": [raw_record(id="")]}, "Record 0 missing valid id"),
        ({"records": [raw_record(id=7)]}, "Record 0 missing valid id"),
        ({"records": [raw_record("a"), raw_record("a")]}, "Record 1 has duplicate id"),
        ({"records": [raw_record(description="")]}, "Record 0 missing valid description"),
        ({"records": [raw_record(amount="4.5")]}, "Record 0 has invalid amount"),
        ({"records": [raw_record(amount=-1)]}, "Record 0 has invalid amount"),
        ({"records": [raw_record(amount=True)]}, "Record 0 has invalid amount"),
        ({"records": [raw_record(amount=float("nan"))]}, "Record 0 has invalid amount"),
        ({"records": [raw_record(amount=10**400)]}, "Record 0 has invalid amount"),
        ({"records": [raw_record(category=None)]}, "Record 0 missing valid category"),
        ({"records": [raw_record(date="2025-02-30")]}, "Record 0 has invalid date"),
        ({"records": [raw_record(date="14/09/2025")]}, "Record 0 has invalid date"),
        ({"records": [raw_record(createdAt="yesterday")]}, "Record 0 has invalid metadata"),
        ({"records": [], "settings": {"budgetCap": -3}}, "Invalid settings"),
        ({"records": [], "settings": {"budgetCap": float("nan")}}, "Invalid settings"),
        ({"records": [], "settings": {"budgetCap": float("inf")}}, "Invalid settings"),
        ({"records": [], "settings": {"budgetCap": "-5"}}, "Invalid settings"),
    ],
)
def test_import_rejections(data, error):
    assert validate_import_data(data).error == error
    store = MemoryStore()
    result = import_data(store, data)
    assert not result.success
    assert result.error == error


def test_import_is_all_or_nothing():
    store = MemoryStore()
    existing = [make_record("keep")]
    store.save_records(existing)
    bad = {"records": [raw_record("ok_1"), raw_record("bad", amount=-2)]}
    assert import_data(store, bad).error == "Record 1 has invalid amount"
    assert store.load_records() == existing


def test_import_without_settings_keeps_current_settings():
    store = MemoryStore()
    s = Settings(budgetCap=10)
    store.save_settings(s)
    result = import_data(store, {"records": [raw_record("txn_1")]})
    assert result.success and result.count == 1
    assert store.load_settings() == s


def test_import_empty_records_clears():
    store = MemoryStore()
    store.save_records([make_record("txn_1")])
    assert import_data(store, {"records": []}).count == 0
    assert store.load_records() == []


def test_import_reports_save_failure():
    store = FailingStore()
    store.fail_records = True
    assert import_data(store, {"records": [raw_record()]}).error == "Failed to save records"

    store = FailingStore()
    store.fail_settings = True
    result = import_data(store, {"records": [], "settings": {"budgetCap": 5}})
    assert result.error == "Failed to save settings"


def test_validate_import_does_not_write():
    result = validate_import_data({"records": [raw_record("a"), raw_record("b")]})
    assert result.success and result.count == 2


def test_import_oversized_integer_amount_from_json_text():
    text = '{"records": [{"id": "a", "description": "x", "amount": 1' + "0" * 400 + (
        ', "category": "Food", "date": "2025-09-14"}]}'
    )
    result = validate_import_data(json.loads(text))
    assert not result.success
    assert result.error == "Record 0 has invalid amount"


@pytest.mark.parametrize("cap", [float("nan"), float("inf"), "-5", -0.01])
def test_settings_reject_non_finite_or_negative_cap(cap):
    with pytest.raises(ValueError):
        Settings.model_validate({"budgetCap": cap})


def test_settings_cap_null_means_disabled():
    assert Settings.model_validate({"budgetCap": None}).budget_cap == 0.0


def test_failed_settings_save_leaves_records_untouched():
    store = FailingStore()
    existing = [make_record("keep")]
    store.save_records(existing)
    store.fail_settings = True
    result = import_data(store, {"records": [raw_record("new")], "settings": {"budgetCap": 5}})
    assert result.error == "Failed to save settings"
    assert store.load_records() == existing
