"""
data_models.py: Data structures for the game state.
"""

from dataclasses import dataclass, field, fields, asdict
from datetime import datetime
from enum import Enum
from typing import List, Optional

from .constants import (
    SCREEN_WIDTH, SCREEN_HEIGHT, GROUND_HEIGHT,
    PLAYER_X_RATIO, PLAYER_Y_RATIO, PLAYER_SIZE, PLAYER_HITBOX_RADIUS
)


@dataclass(frozen=True)
class Playfield:
    """Dimensions of the visible play area."""
    width: float = SCREEN_WIDTH
    height: float = SCREEN_HEIGHT
    ground_height: float = GROUND_HEIGHT

    @property
    def playable_height(self) -> float:
        return self.height - self.ground_height


@dataclass
class Player:
    """The controlled actor. (x, y) is the top-left corner of the sprite box."""
    x: float
    y: float
    velocity: float = 0.0
    rotation: float = 0.0
    width: float = PLAYER_SIZE
    height: float = PLAYER_SIZE
    hitbox_radius: float = PLAYER_HITBOX_RADIUS

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2


def create_player(playfield: Playfield) -> Player:
    """A fresh actor at its spawn point, at rest."""
    return Player(x=playfield.width * PLAYER_X_RATIO, y=playfield.height * PLAYER_Y_RATIO)


@dataclass
class Pipe:
    """An obstacle pair with a single gap centered on gap_y."""
    x: float
    gap_y: float
    passed: bool = False


class CoinType(str, Enum):
    NORMAL = "normal"
    RARE = "rare"


@dataclass
class Coin:
    x: float
    y: float
    type: CoinType = CoinType.NORMAL
    value: int = 1
    collected: bool = False


@dataclass(frozen=True)
class CollectedCoin:
    """Where and what a coin was when the actor picked it up."""
    x: float
    y: float
    type: CoinType
    value: int


@dataclass
class CoinBatch:
    """All coins collected during a single tick."""
    coins: List[CollectedCoin] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.coins)

    @property
    def total_value(self) -> int:
        return sum(c.value for c in self.coins)

    @property
    def rare_count(self) -> int:
        return sum(1 for c in self.coins if c.type is CoinType.RARE)

    def __bool__(self) -> bool:
        return bool(self.coins)


@dataclass
class GameStats:
    """Lifetime statistics across every finished game."""
    total_games: int = 0
    total_pipe_score: int = 0
    total_coin_score: int = 0
    total_diamonds: int = 0
    best_total: int = 0
    best_pipes: int = 0
    best_coins: int = 0
    best_combo: int = 0
    achievement20: bool = False

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "GameStats":
        """
        Merges stored values over defaults. Unknown keys are ignored; counters
        are coerced to int and anything unusable keeps its default.
        """
        stats = cls()
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            if isinstance(getattr(stats, f.name), bool):
                if isinstance(value, bool):
                    setattr(stats, f.name, value)
                continue
            if isinstance(value, bool):
                continue
            try:
                setattr(stats, f.name, int(value))
            except (TypeError, ValueError, OverflowError):
                pass
        return stats


@dataclass
class LeaderboardEntry:
    pseudo: str
    score: int
    created_at: Optional[datetime] = None
