"""Tests for the SQLite leaderboard and the local player's submissions."""

import time

import pytest
from moski_fly.server_db import BEST_SUBMITTED_KEY, Leaderboard, LeaderboardDatabase
from moski_fly.storage import LocalStorage


@pytest.fixture
def db(tmp_path):
    database = LeaderboardDatabase(str(tmp_path / "leaderboard.db"))
    yield database
    try:
        database.close()
    except Exception:
        pass


@pytest.fixture
def board(db, tmp_path):
    return Leaderboard(db, LocalStorage(str(tmp_path / "profile.json")))


# --- Pseudo ---

def test_save_pseudo_trims_and_truncates(board):
    assert board.get_pseudo() is None
    saved = board.save_pseudo("  a-very-long-player-name  ")
    assert saved == "a-very-long-pla"
    assert board.get_pseudo() == saved


def test_pseudo_availability_is_case_insensitive(board, db):
    assert board.is_pseudo_available("Ana")
    db.upsert_score("ana", 12)
    assert not board.is_pseudo_available("ANA ")


# --- Submission ---

def test_first_submission_accepted(board):
    assert board.submit_score("ana", 12)
    assert board.best_submitted() == 12
    entries = board.fetch_top_entries()
    assert [(e.pseudo, e.score) for e in entries] == [("ana", 12)]
    assert entries[0].created_at is not None


def test_only_improvements_accepted(board):
    assert board.submit_score("ana", 12)
    assert not board.submit_score("ana", 12)
    assert not board.submit_score("ana", 5)
    assert board.submit_score("ana", 13)
    assert [(e.pseudo, e.score) for e in board.fetch_top_entries()] == [("ana", 13)]


def test_bounds_validation(board):
    assert not board.submit_score("", 10)
    assert not board.submit_score("x" * 16, 10)
    assert not board.submit_score("ana", 201)
    assert board.submit_score("ana", 200)


def test_best_submitted_survives_garbage(board):
    board.profile.set(BEST_SUBMITTED_KEY, "oops")
    assert board.best_submitted() == 0


def test_async_submission(board):
    thread = board.submit_score_async("ana", 7)
    thread.join(timeout=5)
    assert board.best_submitted() == 7


# --- Queries ---

def test_top_entries_sorted_descending(board, db):
    db.upsert_score("bob", 50)
    db.upsert_score("cy", 10)
    db.upsert_score("dee", 30)
    entries = board.fetch_top_entries(2)
    assert [(e.pseudo, e.score) for e in entries] == [("bob", 50), ("dee", 30)]


def test_player_rank(board, db):
    assert board.player_rank() is None
    db.upsert_score("bob", 50)
    db.upsert_score("cy", 10)
    board.submit_score("ana", 20)
    assert board.player_rank() == 2


# --- Failures ---

def test_closed_database_degrades_quietly(board, db):
    board.submit_score("ana", 20)
    db.close()
    assert board.fetch_top_entries() == []
    assert board.player_rank() is None
    assert not board.is_pseudo_available("zed")
    assert not board.submit_score("ana", 30)


# --- Ordering ---

class SlowFirstWriteDatabase(LeaderboardDatabase):
    """Delays its first write so a later submission can overtake it."""

    def __init__(self, db_file):
        super().__init__(db_file)
        self.delayed = False

    def upsert_score(self, pseudo, score):
        if not self.delayed:
            self.delayed = True
            time.sleep(0.3)
        super().upsert_score(pseudo, score)


def test_overlapping_async_submissions_keep_highest(tmp_path):
    slow_db = SlowFirstWriteDatabase(str(tmp_path / "slow.db"))
    slow_board = Leaderboard(slow_db, LocalStorage(str(tmp_path / "profile.json")))
    first = slow_board.submit_score_async("ana", 15)
    time.sleep(0.05)
    second = slow_board.submit_score_async("ana", 20)
    first.join(timeout=5)
    second.join(timeout=5)

    assert [(e.pseudo, e.score) for e in slow_board.fetch_top_entries()] == [("ana", 20)]
    assert slow_board.best_submitted() == 20
    slow_db.close()


def test_upsert_never_lowers_stored_score(db):
    db.upsert_score("ana", 20)
    db.upsert_score("Ana", 15)
    entries = db.get_top(5)
    assert [(e.pseudo, e.score) for e in entries] == [("Ana", 20)]


def test_malformed_timestamp_reads_as_none(board, db):
    db.upsert_score("ana", 12)
    with db.lock:
        db.cur.execute("UPDATE Leaderboard SET created_at='not-a-date'")
        db.conn.commit()
    entries = board.fetch_top_entries()
    assert [(e.pseudo, e.score, e.created_at) for e in entries] == [("ana", 12, None)]


# --- Assembly ---

def test_default_collaborators_share_profile(tmp_path, monkeypatch):
    pytest.importorskip("pygame")
    from moski_fly.collaborators import default_collaborators
    from moski_fly.sound import PygameSound

    monkeypatch.setattr(PygameSound, "_load", lambda self: None)
    profile = LocalStorage(str(tmp_path / "profile.json"))
    collaborators = default_collaborators(str(tmp_path), sound_enabled=False, profile=profile)
    assert collaborators.leaderboard.profile is profile
    collaborators.leaderboard.db.close()
