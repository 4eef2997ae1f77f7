import json
import logging

from roster import HistoryEntry
from storage import JsonStore, history_key, load_history, save_history


def test_missing_file_reads_as_empty(tmp_path):
    store = JsonStore(str(tmp_path / "storage.json"))
    assert store.get("mr_history_N", []) == []


def test_set_writes_through(tmp_path):
    path = tmp_path / "nested" / "storage.json"
    store = JsonStore(str(path))
    store.set("mr_custom_icons", {"Hulk": "data:image/png;base64,AAAA"})

    assert json.loads(path.read_text(encoding="utf-8")) == {
        "mr_custom_icons": {"Hulk": "data:image/png;base64,AAAA"}
    }
    assert JsonStore(str(path)).get("mr_custom_icons") == {"Hulk": "data:image/png;base64,AAAA"}

    store.delete("mr_custom_icons")
    assert json.loads(path.read_text(encoding="utf-8")) == {}


def test_corrupt_file_falls_back(tmp_path, caplog):
    path = tmp_path / "storage.json"
    path.write_text("{oops", encoding="utf-8")
    caplog.set_level(logging.WARNING)

    store = JsonStore(str(path))
    assert store.get("mr_history_S", []) == []
    assert "Error reading storage file" in caplog.text


def test_write_failure_is_logged(tmp_path, caplog):
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory", encoding="utf-8")
    store = JsonStore(str(blocker / "storage.json"))

    store.set("key", 1)
    assert store.get("key") == 1
    assert "Error writing storage file" in caplog.text


def test_history_round_trip_drops_malformed(tmp_path, caplog):
    store = JsonStore(str(tmp_path / "storage.json"))
    key = history_key("mr_history_", "N")
    assert key == "mr_history_N"

    save_history(store, key, [HistoryEntry("Thor", 2), HistoryEntry("Loki", 1)])
    assert load_history(store, key) == [HistoryEntry("Thor", 2), HistoryEntry("Loki", 1)]

    store.set(key, [{"characterName": "Hela", "timestamp": 3}, {"timestamp": "x"}])
    caplog.set_level(logging.WARNING)
    assert load_history(store, key) == [HistoryEntry("Hela", 3)]
    assert "Dropping malformed history entry" in caplog.text

    store.set(key, "nope")
    assert load_history(store, key) == []


def test_picks_up_writes_from_another_store(tmp_path):
    path = str(tmp_path / "storage.json")
    server, cli = JsonStore(path), JsonStore(path)
    server.set("mr_history_S", [{"characterName": "Thor", "timestamp": 1}])
    assert server.sync() == 0

    assert cli.get("mr_history_S")[0]["characterName"] == "Thor"
    cli.set("mr_history_S", [])

    assert server.sync() == 1
    assert server.get("mr_history_S") == []
    assert server.sync() == 1


def test_own_writes_keep_generation(tmp_path):
    store = JsonStore(str(tmp_path / "storage.json"))
    store.set("a", 1)
    store.set("a", [1, 2, 3])
    store.delete("a")
    assert store.sync() == 0
