"""
server_db.py: Leaderboard persistence (SQLite) and the player-facing leaderboard client.
"""

import logging
import sqlite3
import threading
from datetime import datetime, timezone
from typing import List, Optional

from .constants import PSEUDO_MAX_LENGTH, LEADERBOARD_MAX_SCORE, LEADERBOARD_SIZE
from .data_models import LeaderboardEntry
from .storage import LocalStorage

logger = logging.getLogger(__name__)

PSEUDO_KEY = "moski_pseudo"
BEST_SUBMITTED_KEY = "moski_best_submitted"


def _parse_timestamp(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring malformed leaderboard timestamp %r", value)
        return None


class LeaderboardDatabase:
    """SQLite table of best scores, one row per pseudo (case-insensitive)."""
    def __init__(self, db_file: str):
        # submissions arrive from worker threads; the lock serializes them
        self.conn = sqlite3.connect(db_file, check_same_thread=False)
        self.cur = self.conn.cursor()
        self.lock = threading.Lock()
        self.setup()

    def setup(self):
        """Creates tables if they don't exist."""
        with self.lock:
            self.cur.execute("""
                CREATE TABLE IF NOT EXISTS Leaderboard (
                    pseudo_key TEXT PRIMARY KEY,
                    pseudo TEXT NOT NULL,
                    score INTEGER DEFAULT 0,
                    created_at TEXT
                )
            """)
            self.conn.commit()

    def has_pseudo(self, pseudo_key: str) -> bool:
        with self.lock:
            self.cur.execute(
                "SELECT 1 FROM Leaderboard WHERE pseudo_key=?", (pseudo_key,))
            return self.cur.fetchone() is not None

    def upsert_score(self, pseudo: str, score: int):
        """Stores the score under the pseudo; a stored score is never lowered."""
        created_at = datetime.now(timezone.utc).isoformat()
        with self.lock:
            self.cur.execute("""
                INSERT INTO Leaderboard (pseudo_key, pseudo, score, created_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(pseudo_key) DO UPDATE SET
                    pseudo=excluded.pseudo,
                    created_at=CASE WHEN excluded.score > Leaderboard.score
                        THEN excluded.created_at ELSE Leaderboard.created_at END,
                    score=MAX(Leaderboard.score, excluded.score)
            """, (pseudo.lower(), pseudo, score, created_at))
            self.conn.commit()

    def get_top(self, limit: int) -> List[LeaderboardEntry]:
        """Fetches the top scores, best first."""
        with self.lock:
            self.cur.execute("""
                SELECT pseudo, score, created_at
                FROM Leaderboard
                ORDER BY score DESC, created_at ASC
                LIMIT ?
            """, (limit,))
            rows = self.cur.fetchall()
        return [
            LeaderboardEntry(
                pseudo=pseudo,
                score=score,
                created_at=_parse_timestamp(created_at),
            )
            for pseudo, score, created_at in rows
        ]

    def count_above(self, score: int) -> int:
        with self.lock:
            self.cur.execute(
                "SELECT COUNT(*) FROM Leaderboard WHERE score > ?", (score,))
            return self.cur.fetchone()[0]

    def close(self):
        with self.lock:
            self.conn.close()


class Leaderboard:
    """
    Leaderboard client for the local player. The pseudo and the best score
    this player already submitted live in the player's local storage; every
    method degrades to a harmless default when storage fails.
    """

    def __init__(self, db: LeaderboardDatabase, profile: LocalStorage):
        self.db = db
        self.profile = profile
        # held across the best-score check and the write
        self.submit_lock = threading.Lock()

    # --- Pseudo management ---

    def get_pseudo(self) -> Optional[str]:
        return self.profile.get(PSEUDO_KEY)

    def save_pseudo(self, pseudo: str) -> str:
        cleaned = pseudo.strip()[:PSEUDO_MAX_LENGTH]
        self.profile.set(PSEUDO_KEY, cleaned)
        return cleaned

    def is_pseudo_available(self, pseudo: str) -> bool:
        """Fails closed: a storage error reports the pseudo as taken."""
        try:
            return not self.db.has_pseudo(pseudo.strip().lower())
        except sqlite3.Error as e:
            logger.error("Error checking pseudo: %s", e)
            return False

    # --- Scores ---

    def best_submitted(self) -> int:
        try:
            return int(self.profile.get(BEST_SUBMITTED_KEY, 0))
        except (TypeError, ValueError):
            return 0

    def submit_score(self, pseudo: str, score: int) -> bool:
        """Submits the score only if it beats this player's previous submission."""
        # Basic validation
        if not pseudo or len(pseudo) > PSEUDO_MAX_LENGTH:
            return False
        if score < 0 or score > LEADERBOARD_MAX_SCORE:
            return False

        with self.submit_lock:
            best = self.best_submitted()
            if score <= best:
                return False
            try:
                self.db.upsert_score(pseudo.strip(), score)
            except sqlite3.Error as e:
                logger.error("Error submitting score: %s", e)
                return False
            self.profile.set(BEST_SUBMITTED_KEY, max(best, score))
        logger.info("Submitted score %d for %s", score, pseudo)
        return True

    def submit_score_async(self, pseudo: str, score: int) -> threading.Thread:
        """Fire-and-forget submission on a daemon thread."""
        thread = threading.Thread(target=self._submit_quietly, args=(pseudo, score), daemon=True)
        thread.start()
        return thread

    def _submit_quietly(self, pseudo: str, score: int):
        try:
            self.submit_score(pseudo, score)
        except Exception as e:
            logger.error("Leaderboard submission failed: %s", e)

    def fetch_top_entries(self, n: int = LEADERBOARD_SIZE) -> List[LeaderboardEntry]:
        try:
            return self.db.get_top(n)
        except sqlite3.Error as e:
            logger.error("Error fetching leaderboard: %s", e)
            return []

    def player_rank(self) -> Optional[int]:
        """1-based rank of this player's best submission, or None if never submitted."""
        best = self.best_submitted()
        if best == 0:
            return None
        try:
            return self.db.count_above(best) + 1
        except sqlite3.Error as e:
            logger.error("Error getting rank: %s", e)
            return None
