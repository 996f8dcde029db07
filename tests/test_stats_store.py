"""Tests for local storage and lifetime statistics."""

import json
import threading

from moski_fly.data_models import GameStats
from moski_fly.stats_store import STATS_KEY, StatsStore
from moski_fly.storage import LocalStorage


def make_store(tmp_path):
    return StatsStore(LocalStorage(str(tmp_path / "stats.json")))


# --- LocalStorage ---

def test_missing_file_reads_as_empty(tmp_path):
    storage = LocalStorage(str(tmp_path / "nothing.json"))
    assert storage.get("key") is None
    assert storage.get("key", 7) == 7


def test_set_creates_directory_and_persists(tmp_path):
    path = tmp_path / "nested" / "profile.json"
    storage = LocalStorage(str(path))
    assert storage.set("moski_pseudo", "ana")
    assert LocalStorage(str(path)).get("moski_pseudo") == "ana"
    assert json.loads(path.read_text()) == {"moski_pseudo": "ana"}


def test_set_keeps_other_keys(tmp_path):
    storage = LocalStorage(str(tmp_path / "profile.json"))
    storage.set("a", 1)
    storage.set("b", 2)
    assert storage.get("a") == 1
    assert storage.get("b") == 2


def test_corrupt_file_reads_as_empty(tmp_path):
    path = tmp_path / "profile.json"
    path.write_text("{not json")
    storage = LocalStorage(str(path))
    assert storage.get("a", "default") == "default"


def test_unwritable_path_reports_failure(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("")
    storage = LocalStorage(str(blocker / "profile.json"))
    assert not storage.set("a", 1)


# --- GameStats ---

def test_from_dict_fills_missing_and_ignores_unknown():
    stats = GameStats.from_dict({"total_games": 3, "legacy_field": True})
    assert stats.total_games == 3
    assert stats.best_total == 0
    assert not stats.achievement20


# --- StatsStore ---

def test_fresh_store_has_default_stats(tmp_path):
    assert make_store(tmp_path).load_stats() == GameStats()


def test_record_game_result_accumulates(tmp_path):
    store = make_store(tmp_path)
    store.record_game_result(5, 4, 1, 2)
    stats = store.record_game_result(3, 9, 0, 4)

    assert stats.total_games == 2
    assert stats.total_pipe_score == 8
    assert stats.total_coin_score == 13
    assert stats.total_diamonds == 1
    assert stats.best_total == 12
    assert stats.best_pipes == 5
    assert stats.best_coins == 9
    assert stats.best_combo == 4
    assert not stats.achievement20
    assert make_store(tmp_path).load_stats() == stats


def test_achievement_unlocks_at_twenty(tmp_path):
    store = make_store(tmp_path)
    assert not store.record_game_result(10, 9, 0, 0).achievement20
    assert store.record_game_result(10, 10, 0, 0).achievement20
    assert store.record_game_result(0, 0, 0, 0).achievement20


def test_reset_totals(tmp_path):
    store = make_store(tmp_path)
    store.record_game_result(30, 0, 0, 0)
    assert store.reset_totals() == GameStats()
    assert store.load_stats() == GameStats()


def test_garbage_stats_fall_back_to_defaults(tmp_path):
    storage = LocalStorage(str(tmp_path / "stats.json"))
    storage.set(STATS_KEY, "not a dict")
    assert StatsStore(storage).load_stats() == GameStats()


def test_from_dict_coerces_or_drops_mistyped_values():
    stats = GameStats.from_dict({
        "total_games": "3",
        "total_pipe_score": 4.0,
        "best_total": "lots",
        "best_combo": None,
        "total_diamonds": True,
        "achievement20": "yes",
    })
    assert stats.total_games == 3
    assert stats.total_pipe_score == 4
    assert stats.best_total == 0
    assert stats.best_combo == 0
    assert stats.total_diamonds == 0
    assert stats.achievement20 is False


def test_mistyped_stats_still_record(tmp_path):
    storage = LocalStorage(str(tmp_path / "stats.json"))
    storage.set(STATS_KEY, {"total_games": "3", "best_total": "oops"})
    stats = StatsStore(storage).record_game_result(5, 2, 0, 1)
    assert stats.total_games == 4
    assert stats.best_total == 7
    assert StatsStore(storage).load_stats() == stats


def test_concurrent_sets_keep_every_key(tmp_path):
    storage = LocalStorage(str(tmp_path / "profile.json"))

    def writer(key):
        for i in range(50):
            storage.set(key, i)

    threads = [threading.Thread(target=writer, args=(k,)) for k in ("a", "b")]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)
    assert storage.get("a") == 49
    assert storage.get("b") == 49
