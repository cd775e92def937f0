"""Tests for the JSON file store and its legacy layouts."""

from pathlib import Path

import pytest

from keyserver.application.key_service import KeyService
from keyserver.domain.constants import DEFAULT_MESSAGE_TEMPLATE, DEFAULT_THRESHOLDS
from keyserver.domain.entities import HistoryAction, KeyRecord, NotificationConfig
from keyserver.domain.exceptions import StoreIOError
from keyserver.infrastructure.storage.store import (
    InMemoryStore,
    JsonFileStore,
    StoreSnapshot,
)
from tests.helpers import (
    RecordingDispatcher,
    make_key,
    make_record,
    read_store,
    write_store,
)


def test_missing_file_starts_empty(db_path: Path):
    """A missing store file is not an error."""
    snapshot = JsonFileStore(db_path).load()

    assert snapshot.records == []
    assert snapshot.next_id == 1
    assert snapshot.state.last_warned is None
    assert snapshot.config.thresholds == list(DEFAULT_THRESHOLDS)


def test_corrupt_file_starts_empty(db_path: Path):
    db_path.write_text("{not json", encoding="utf-8")

    snapshot = JsonFileStore(db_path).load()

    assert snapshot.records == []
    assert snapshot.next_id == 1


def test_unexpected_layout_starts_empty(db_path: Path):
    write_store(db_path, "just a string")

    assert JsonFileStore(db_path).load().records == []


def test_legacy_bare_array_is_backfilled(db_path: Path):
    """The oldest format is a bare array of records without newer fields."""
    write_store(
        db_path,
        [
            {"id": 3, "key": make_key(0), "inUse": True, "assignedTo": "max"},
            {"id": 7, "key": make_key(1), "inUse": False, "assignedTo": None},
        ],
    )

    snapshot = JsonFileStore(db_path).load()

    assert [r.id for r in snapshot.records] == [3, 7]
    assert snapshot.next_id == 8
    assert snapshot.state.last_warned is None
    first = snapshot.records[0]
    assert first.history == []
    assert first.created_at
    assert first.last_used_at is None
    assert first.invalid is False
    assert first.in_use is True
    assert first.assigned_to == "max"


def test_records_without_id_get_fresh_ids(db_path: Path):
    write_store(db_path, [{"id": 4, "key": make_key(0)}, {"key": make_key(1)}])

    snapshot = JsonFileStore(db_path).load()

    assert [r.id for r in snapshot.records] == [4, 5]
    assert snapshot.next_id == 6


def test_numeric_assignee_in_legacy_file_is_kept_as_text(db_path: Path):
    """Older clients could store a bare number as the assignee."""
    write_store(
        db_path,
        [
            {"id": 1, "key": make_key(0), "inUse": True, "assignedTo": "max"},
            {"id": 2, "key": make_key(1), "inUse": True, "assignedTo": 42},
            {"id": 3, "key": make_key(2), "inUse": False},
        ],
    )

    snapshot = JsonFileStore(db_path).load()

    assert [r.id for r in snapshot.records] == [1, 2, 3]
    assert snapshot.records[1].assigned_to == "42"


def test_malformed_record_is_skipped_and_the_rest_kept(db_path: Path):
    write_store(
        db_path,
        {
            "lastWarned": 10,
            "keys": [
                make_record(0),
                {"id": 2, "key": ["not", "a", "string"]},
                {"id": 3, "inUse": True},
                "garbage",
                make_record(4),
            ],
        },
    )

    snapshot = JsonFileStore(db_path).load()

    assert [r.key for r in snapshot.records] == [make_key(0), make_key(4)]
    assert snapshot.next_id == 6
    assert snapshot.state.last_warned == 10


def test_malformed_warning_state_does_not_drop_keys(db_path: Path):
    write_store(db_path, {"lastWarned": "soon", "keys": [make_record(0)]})

    snapshot = JsonFileStore(db_path).load()

    assert len(snapshot.records) == 1
    assert snapshot.state.last_warned is None


def test_non_list_keys_starts_empty(db_path: Path):
    write_store(db_path, {"lastWarned": None, "keys": {"key": make_key(0)}})

    assert JsonFileStore(db_path).load().records == []


def test_next_save_keeps_legacy_keys(db_path: Path):
    """Loading a lax legacy file and saving again must not lose records."""
    write_store(
        db_path,
        [
            {"id": 1, "key": make_key(0), "inUse": True, "assignedTo": 42},
            {"id": 2, "key": make_key(1)},
        ],
    )
    service = KeyService(JsonFileStore(db_path), RecordingDispatcher())

    service.create_keys(make_key(2))

    stored = read_store(db_path)
    assert [k["key"] for k in stored["keys"]] == [make_key(i) for i in range(3)]
    assert stored["keys"][0]["assignedTo"] == "42"


def test_wrapped_layout_without_config_uses_defaults(db_path: Path):
    write_store(db_path, {"lastWarned": 20, "keys": [make_record(0)]})

    snapshot = JsonFileStore(db_path).load()

    assert snapshot.state.last_warned == 20
    assert len(snapshot.records) == 1
    assert snapshot.config.thresholds == [20, 10]
    assert snapshot.config.message_template == DEFAULT_MESSAGE_TEMPLATE


def test_malformed_config_falls_back_without_losing_keys(db_path: Path):
    write_store(
        db_path,
        {
            "lastWarned": None,
            "keys": [make_record(0)],
            "telegramConfig": {"thresholds": [-5], "messageTemplate": "x"},
        },
    )

    snapshot = JsonFileStore(db_path).load()

    assert len(snapshot.records) == 1
    assert snapshot.config.thresholds == [20, 10]


def test_history_is_loaded_in_order(db_path: Path):
    history = [
        {"action": "free", "timestamp": "2024-01-01T10:00:00.000Z", "assignedTo": None},
        {"action": "inuse", "timestamp": "2024-01-01T10:05:00.000Z", "assignedTo": "a"},
    ]
    write_store(
        db_path, {"lastWarned": None, "keys": [make_record(0, history=history)]}
    )

    record = JsonFileStore(db_path).load().records[0]

    assert [e.action for e in record.history] == [
        HistoryAction.FREE,
        HistoryAction.INUSE,
    ]
    assert record.history[1].assigned_to == "a"


def test_save_writes_current_layout(db_path: Path):
    snapshot = StoreSnapshot(
        records=[
            KeyRecord(id=1, key=make_key(0), created_at="2024-01-01T00:00:00.000Z")
        ],
        next_id=2,
        config=NotificationConfig(thresholds=[5, 15], message_template="{free} left"),
    )
    snapshot.state.last_warned = 15

    JsonFileStore(db_path).save(snapshot)

    content = read_store(db_path)
    assert content["lastWarned"] == 15
    assert content["telegramConfig"] == {
        "thresholds": [15, 5],
        "messageTemplate": "{free} left",
    }
    assert content["keys"] == [
        {
            "id": 1,
            "key": make_key(0),
            "inUse": False,
            "assignedTo": None,
            "createdAt": "2024-01-01T00:00:00.000Z",
            "lastUsedAt": None,
            "history": [],
            "invalid": False,
        }
    ]
    # Pretty-printed
    assert db_path.read_text(encoding="utf-8").startswith('{\n  "lastWarned"')


def test_save_leaves_no_temp_files(tmp_path: Path):
    db_path = tmp_path / "nested" / "db.json"

    JsonFileStore(db_path).save(StoreSnapshot())

    assert [p.name for p in db_path.parent.iterdir()] == ["db.json"]


def test_save_failure_raises_store_error(tmp_path: Path):
    # A directory where the file should be cannot be replaced by a file
    target = tmp_path / "db.json"
    target.mkdir()

    with pytest.raises(StoreIOError):
        JsonFileStore(target).save(StoreSnapshot())


def test_in_memory_store_returns_copies():
    store = InMemoryStore()
    snapshot = store.load()
    snapshot.records.append(KeyRecord(id=1, key=make_key(0), created_at="t"))

    assert store.load().records == []

    store.save(snapshot)

    assert len(store.load().records) == 1
    assert store.save_count == 1
