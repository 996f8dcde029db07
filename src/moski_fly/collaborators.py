"""
collaborators.py: Interfaces the session controller talks to, plus no-op stand-ins
and the default assembly used by the game client.
"""

import os
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from .constants import DATA_DIR, STATS_FILE, PROFILE_FILE, DB_FILE, LEADERBOARD_SIZE
from .data_models import GameStats, LeaderboardEntry


class StatsCollaborator(Protocol):
    def load_stats(self) -> GameStats: ...

    def record_game_result(self, pipe_score: int, coin_score: int, diamonds: int, max_combo: int) -> GameStats: ...

    def reset_totals(self) -> GameStats: ...


class LeaderboardCollaborator(Protocol):
    def get_pseudo(self) -> Optional[str]: ...

    def submit_score(self, pseudo: str, score: int) -> bool: ...

    def submit_score_async(self, pseudo: str, score: int) -> threading.Thread: ...

    def fetch_top_entries(self, n: int = LEADERBOARD_SIZE) -> List[LeaderboardEntry]: ...


class SoundCollaborator(Protocol):
    def play(self, name: str): ...

    def start_music(self): ...

    def stop_music(self): ...


class NullStats:
    """Keeps nothing; every game looks like the first one."""

    def load_stats(self) -> GameStats:
        return GameStats()

    def record_game_result(self, pipe_score: int, coin_score: int, diamonds: int, max_combo: int) -> GameStats:
        total = pipe_score + coin_score
        return GameStats(total_games=1, total_pipe_score=pipe_score, total_coin_score=coin_score,
                         total_diamonds=diamonds, best_total=total, best_pipes=pipe_score,
                         best_coins=coin_score, best_combo=max_combo)

    def reset_totals(self) -> GameStats:
        return GameStats()


class NullLeaderboard:
    def get_pseudo(self) -> Optional[str]:
        return None

    def submit_score(self, pseudo: str, score: int) -> bool:
        return False

    def submit_score_async(self, pseudo: str, score: int) -> threading.Thread:
        thread = threading.Thread(target=self.submit_score, args=(pseudo, score), daemon=True)
        thread.start()
        return thread

    def fetch_top_entries(self, n: int = LEADERBOARD_SIZE) -> List[LeaderboardEntry]:
        return []


class NullSound:
    def play(self, name: str):
        pass

    def start_music(self):
        pass

    def stop_music(self):
        pass


@dataclass
class Collaborators:
    stats: StatsCollaborator = field(default_factory=NullStats)
    leaderboard: LeaderboardCollaborator = field(default_factory=NullLeaderboard)
    sound: SoundCollaborator = field(default_factory=NullSound)


def default_collaborators(data_dir: str = DATA_DIR, sound_enabled: bool = True,
                          profile=None) -> Collaborators:
    """
    Assembles the file-backed stores and pygame sound used by the real game.
    Pass `profile` to share one profile LocalStorage with the front end.
    """
    # Imported here so headless users of the core never touch pygame or sqlite.
    from .server_db import Leaderboard, LeaderboardDatabase
    from .sound import PygameSound
    from .stats_store import StatsStore
    from .storage import LocalStorage

    os.makedirs(data_dir, exist_ok=True)
    if profile is None:
        profile = LocalStorage(os.path.join(data_dir, PROFILE_FILE))
    return Collaborators(
        stats=StatsStore(LocalStorage(os.path.join(data_dir, STATS_FILE))),
        leaderboard=Leaderboard(LeaderboardDatabase(os.path.join(data_dir, DB_FILE)), profile),
        sound=PygameSound(enabled=sound_enabled),
    )
