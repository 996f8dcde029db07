"""
stats_store.py: Lifetime statistics persisted between sessions.
"""

from .constants import ACHIEVEMENT_SCORE
from .data_models import GameStats
from .storage import LocalStorage

STATS_KEY = "moski_stats"


class StatsStore:
    """Reads and updates the lifetime GameStats kept in local storage."""

    def __init__(self, storage: LocalStorage):
        self.storage = storage

    def load_stats(self) -> GameStats:
        raw = self.storage.get(STATS_KEY)
        if not isinstance(raw, dict):
            return GameStats()
        return GameStats.from_dict(raw)

    def record_game_result(self, pipe_score: int, coin_score: int, diamonds: int, max_combo: int) -> GameStats:
        """Folds one finished game into the totals and returns the updated stats."""
        stats = self.load_stats()
        total_score = pipe_score + coin_score

        stats.total_games += 1
        stats.total_pipe_score += pipe_score
        stats.total_coin_score += coin_score
        stats.total_diamonds += diamonds
        stats.best_total = max(stats.best_total, total_score)
        stats.best_pipes = max(stats.best_pipes, pipe_score)
        stats.best_coins = max(stats.best_coins, coin_score)
        stats.best_combo = max(stats.best_combo, max_combo)
        if total_score >= ACHIEVEMENT_SCORE:
            stats.achievement20 = True

        self.storage.set(STATS_KEY, stats.to_dict())
        return stats

    def reset_totals(self) -> GameStats:
        fresh = GameStats()
        self.storage.set(STATS_KEY, fresh.to_dict())
        return fresh
