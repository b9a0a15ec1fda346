# tests/test_store.py
import json
from datetime import datetime, timezone

import pytest

from slotwatch.models import WatchState
from slotwatch.store import WATCH_CONFIG_KEY, WATCH_STATE_KEY, DocumentStore, StoreError


def test_missing_documents_are_none(store):
    assert store.get_recipient() is None
    assert store.get_watch_config() is None
    assert store.get_watch_state() is None


def test_documents_are_one_json_file_per_key(tmp_path):
    store = DocumentStore(tmp_path)

    store.set_watch_enabled(True)

    data = json.loads((tmp_path / f"{WATCH_CONFIG_KEY}.json").read_text(encoding="utf-8"))
    assert data["enabled"] is True
    assert data["interval_minutes"] == 2
    assert data["target_dates"] == []
    assert not list(tmp_path.glob("*.tmp"))


def test_ensure_watch_config_keeps_existing(store):
    store.set_interval_minutes(7)

    config = store.ensure_watch_config()

    assert config.interval_minutes == 7


def test_target_dates_are_a_sorted_set(store):
    store.add_target_dates(["2025-01-16", "2025-01-15"])
    store.add_target_dates(["2025-01-15"])

    assert store.get_watch_config().target_dates == ["2025-01-15", "2025-01-16"]

    config, removed = store.remove_target_dates(["2025-01-16", "2025-02-01"])
    assert removed == ["2025-01-16"]
    assert config.target_dates == ["2025-01-15"]


def test_state_round_trip(store):
    state = WatchState(
        has_availability=True,
        checked_at=datetime(2025, 1, 10, 9, 0, tzinfo=timezone.utc),
        last_notified_at=datetime(2025, 1, 10, 9, 0, tzinfo=timezone.utc),
        checked_target_dates=["2025-01-15"],
    )

    store.set_watch_state(state)

    assert store.get_watch_state() == state


def test_last_write_wins(store):
    store.set_watch_enabled(True)
    store.set_watch_enabled(False)

    assert store.get_watch_config().enabled is False


def test_corrupt_document_raises(tmp_path):
    store = DocumentStore(tmp_path)
    (tmp_path / f"{WATCH_STATE_KEY}.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(StoreError):
        store.get_watch_state()


def test_invalid_document_raises(tmp_path):
    store = DocumentStore(tmp_path)
    (tmp_path / f"{WATCH_CONFIG_KEY}.json").write_text('{"interval_minutes": 500}', encoding="utf-8")

    with pytest.raises(StoreError):
        store.get_watch_config()
