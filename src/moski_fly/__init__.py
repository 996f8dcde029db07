"""Moski Fly: a flappy-style arcade game."""

from .constants import DEFAULT_CONFIG, GameConfig
from .data_models import Coin, CoinType, GameStats, Pipe, Player, Playfield
from .frame_scheduler import FrameHost, FrameScheduler
from .physics_core import PhysicsCore
from .session import GameState, SessionController

__all__ = [
    "DEFAULT_CONFIG", "GameConfig",
    "Coin", "CoinType", "GameStats", "Pipe", "Player", "Playfield",
    "FrameHost", "FrameScheduler",
    "PhysicsCore",
    "GameState", "SessionController",
]
