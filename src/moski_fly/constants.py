"""
constants.py: Centralized configuration for game tuning, layout and storage.
"""

import os
from dataclasses import dataclass

# -------- Display Config --------
SCREEN_WIDTH = 400
SCREEN_HEIGHT = 711
RENDER_FPS = 60
GROUND_HEIGHT = 80

# Time normalization
FRAME_MS = 16.67                # Canonical frame duration (60 Hz)
MAX_FRAME_MS = 32.0             # Never simulate slower than ~30 Hz after a stall

# -------- Player Config --------
PLAYER_X_RATIO = 0.2            # Spawn x as a fraction of screen width
PLAYER_Y_RATIO = 0.4            # Spawn y as a fraction of screen height
PLAYER_SIZE = 64
PLAYER_HITBOX_RADIUS = 18       # Smaller than the sprite, centered on it

# Rotation mapping (degrees per unit of velocity)
ROTATION_FALL_FACTOR = 3
ROTATION_RISE_FACTOR = 2
ROTATION_MAX_DOWN = 90
ROTATION_MAX_UP = -30

# -------- Pipe Config --------
PIPE_GAP_MARGIN = 120           # Gap center keeps clear of ceiling and ground
PIPE_PASS_OFFSET = 40           # Center must pass pipe.x + offset to score

# -------- Coin Config --------
COIN_RADIUS = 20
COIN_SPAWN_CHANCE = 0.65
COIN_RARE_CHANCE = 0.10
COIN_NORMAL_VALUE = 1
COIN_RARE_VALUE = 3
COIN_GAP_OFFSET = 40            # Coin x relative to its pipe's x
COIN_MIN_SPACING = 50           # No second coin within this horizontal distance
COIN_DESPAWN_X = -50

# -------- Scoring Config --------
COMBO_THRESHOLD = 3
COMBO_MULTIPLIER = 2
ACHIEVEMENT_SCORE = 20

# -------- Cosmetics --------
GROUND_TILE_PERIOD = 48
IDLE_GROUND_STEP = 0.5
IDLE_FLOAT_AMPLITUDE = 10
IDLE_FLOAT_PERIOD_MS = 500

# -------- Leaderboard Config --------
PSEUDO_MAX_LENGTH = 15
LEADERBOARD_MAX_SCORE = 200
LEADERBOARD_SIZE = 30
UPDATE_VERSION = "v1.1"

# -------- Storage Config --------
DATA_DIR = os.environ.get("MOSKI_FLY_HOME", os.path.join(os.path.expanduser("~"), ".moski_fly"))
STATS_FILE = "stats.json"
PROFILE_FILE = "profile.json"
DB_FILE = "leaderboard.db"


@dataclass(frozen=True)
class GameConfig:
    """Tunable physics parameters. Replace the whole object to retune."""
    gravity: float = 0.5            # Velocity gained per canonical frame
    flap_strength: float = -9.0     # Velocity set by an impulse (negative = up)
    terminal_velocity: float = 12.0 # Maximum downward velocity
    pipe_speed: float = 3.0         # Horizontal scroll per canonical frame
    pipe_gap: float = 180.0
    pipe_width: float = 80.0
    pipe_spacing: float = 280.0


DEFAULT_CONFIG = GameConfig()
