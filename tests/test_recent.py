"""Tests for the recent connections history."""

import json
from datetime import UTC, datetime, timedelta

import pytest

from pgscope.core.exceptions import ConfigError
from pgscope.core.models import ConnectionConfig
from pgscope.core.recent import (
    MAX_RECENT,
    RecentConnectionsStore,
    connection_id,
    connection_name,
)

T0 = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


def _config(n=0, password="s3cret"):
    return ConnectionConfig(
        host=f"db{n}.example.com",
        port=5432,
        database="app",
        user="me",
        password=password,
    )


@pytest.fixture
def store(temp_dir):
    return RecentConnectionsStore(temp_dir / "nested" / "recent.json")


@pytest.mark.unit
class TestIdentity:
    def test_connection_id(self):
        assert connection_id(_config()) == "db0.example.com:5432:app:me"

    def test_connection_name(self):
        assert connection_name(_config()) == "me@db0.example.com:5432/app"


@pytest.mark.unit
class TestRecentConnectionsStore:
    def test_missing_file_is_empty(self, store):
        assert store.entries() == []

    def test_add_creates_file(self, store):
        entry = store.add(_config(), now=T0)

        assert store.path.exists()
        assert entry.id == "db0.example.com:5432:app:me"
        assert entry.last_used == T0
        assert store.entries() == [entry]

    def test_password_never_written(self, store):
        store.add(_config(password="hunter2"), now=T0)

        assert "hunter2" not in store.path.read_text()
        assert store.entries()[0].config.password == ""

    def test_newest_first(self, store):
        store.add(_config(1), now=T0)
        store.add(_config(2), now=T0 + timedelta(minutes=1))
        store.add(_config(1), now=T0 + timedelta(minutes=2))

        entries = store.entries()
        assert [e.config.host for e in entries] == ["db1.example.com", "db2.example.com"]
        assert entries[0].last_used == T0 + timedelta(minutes=2)

    def test_capped(self, store):
        for n in range(MAX_RECENT + 3):
            store.add(_config(n), now=T0 + timedelta(minutes=n))

        entries = store.entries()
        assert len(entries) == MAX_RECENT
        assert entries[0].config.host == f"db{MAX_RECENT + 2}.example.com"
        assert "db0.example.com" not in {e.config.host for e in entries}

    def test_get(self, store):
        store.add(_config(), now=T0)
        assert store.get("db0.example.com:5432:app:me").name == "me@db0.example.com:5432/app"
        assert store.get("nope") is None

    def test_remove(self, store):
        store.add(_config(1), now=T0)
        store.add(_config(2), now=T0)

        assert store.remove("db1.example.com:5432:app:me")
        assert not store.remove("db1.example.com:5432:app:me")
        assert [e.config.host for e in store.entries()] == ["db2.example.com"]

    def test_clear(self, store):
        store.add(_config(), now=T0)
        store.clear()
        assert store.entries() == []

    def test_file_is_json_list(self, store):
        store.add(_config(), now=T0)
        payload = json.loads(store.path.read_text())
        assert isinstance(payload, list)
        assert payload[0]["config"]["host"] == "db0.example.com"

    @pytest.mark.parametrize("content", ["{not json", '{"id": 1}', '[{"id": "x"}]'])
    def test_malformed_file(self, store, content):
        store.path.parent.mkdir(parents=True)
        store.path.write_text(content)
        with pytest.raises(ConfigError, match="Malformed connection history"):
            store.entries()

    def test_write_leaves_no_temp_file(self, store):
        store.add(_config(), now=T0)
        assert [p.name for p in store.path.parent.iterdir()] == ["recent.json"]

    def test_interrupted_write_keeps_history(self, store, monkeypatch):
        store.add(_config(0), now=T0)

        def fail(self, target):
            raise OSError("disk full")

        monkeypatch.setattr("pathlib.Path.replace", fail)
        with pytest.raises(OSError, match="disk full"):
            store.add(_config(1), now=T0 + timedelta(minutes=1))

        assert [e.config.host for e in store.entries()] == ["db0.example.com"]
