"""
physics_core.py: The per-tick kinematic functions, obstacle generation and collision logic.
"""

import math
import random
from dataclasses import replace
from typing import Callable, List, Optional, Tuple

from .constants import (
    FRAME_MS, GameConfig,
    ROTATION_FALL_FACTOR, ROTATION_RISE_FACTOR, ROTATION_MAX_DOWN, ROTATION_MAX_UP,
    PIPE_GAP_MARGIN, PIPE_PASS_OFFSET,
    COIN_RADIUS, COIN_SPAWN_CHANCE, COIN_RARE_CHANCE, COIN_NORMAL_VALUE, COIN_RARE_VALUE,
    COIN_GAP_OFFSET, COIN_MIN_SPACING, COIN_DESPAWN_X
)
from .data_models import Player, Pipe, Coin, CoinType, CollectedCoin, CoinBatch, Playfield


def time_scale(elapsed_ms: float) -> float:
    """Elapsed time expressed in canonical 60 Hz frames."""
    return elapsed_ms / FRAME_MS


def max_pipe_count(config: GameConfig, playfield: Playfield) -> int:
    """Upper bound on simultaneously active pipes for a sane configuration."""
    return math.ceil(playfield.width / config.pipe_spacing) + 1


class PhysicsCore:
    """
    Stateless simulation step. Every method returns new state objects and
    leaves its inputs untouched; the caller owns sequencing.

    ``rng`` is a uniform [0, 1) source used for gap heights and coin rolls.
    """

    def __init__(self, rng: Callable[[], float] = random.random):
        self.rng = rng

    # ---------- Actor ----------

    def apply_gravity(self, player: Player, config: GameConfig, elapsed_ms: float) -> Player:
        """
        Integrates one tick. Velocity is clamped to terminal velocity before
        it moves the actor. A zero-length tick changes nothing.
        """
        dt = time_scale(elapsed_ms)
        if dt == 0:
            return replace(player)
        velocity = player.velocity + config.gravity * dt
        velocity = min(velocity, config.terminal_velocity)
        y = player.y + velocity * dt

        if velocity > 0:
            rotation = min(velocity * ROTATION_FALL_FACTOR, ROTATION_MAX_DOWN)
        else:
            rotation = max(velocity * ROTATION_RISE_FACTOR, ROTATION_MAX_UP)

        return replace(player, y=y, velocity=velocity, rotation=rotation)

    def flap(self, player: Player, config: GameConfig) -> Player:
        """Returns the actor with its velocity overwritten by the flap impulse."""
        return replace(player, velocity=config.flap_strength)

    # ---------- Pipes ----------

    def spawn_pipe(self, config: GameConfig, playfield: Playfield) -> Pipe:
        """Generates a new pipe at the right edge with a random gap center."""
        min_gap_y = PIPE_GAP_MARGIN
        max_gap_y = playfield.playable_height - PIPE_GAP_MARGIN
        gap_y = min_gap_y + self.rng() * (max_gap_y - min_gap_y)
        return Pipe(x=float(playfield.width), gap_y=gap_y)

    def update_pipes(self, pipes: List[Pipe], config: GameConfig, playfield: Playfield,
                     elapsed_ms: float) -> Tuple[List[Pipe], Optional[Pipe]]:
        """
        Shifts, filters, then conditionally appends, in that order, so that
        spacing is measured against the already-shifted positions.
        Returns the new pipe list and the pipe spawned this tick, if any.
        """
        pipe_delta_x = config.pipe_speed * time_scale(elapsed_ms)

        moved = [replace(pipe, x=pipe.x - pipe_delta_x) for pipe in pipes]
        remaining = [p for p in moved if p.x > -config.pipe_width]

        spawned = None
        if not remaining or remaining[-1].x < playfield.width - config.pipe_spacing:
            spawned = self.spawn_pipe(config, playfield)
            remaining.append(spawned)

        return remaining, spawned

    # ---------- Coins ----------

    def create_coin_in_gap(self, pipe: Pipe) -> Coin:
        """A coin in the middle of the pipe's gap; rare ones are worth more."""
        is_rare = self.rng() < COIN_RARE_CHANCE
        return Coin(
            x=pipe.x + COIN_GAP_OFFSET,
            y=pipe.gap_y,
            type=CoinType.RARE if is_rare else CoinType.NORMAL,
            value=COIN_RARE_VALUE if is_rare else COIN_NORMAL_VALUE,
        )

    def maybe_spawn_coin(self, coins: List[Coin], pipe: Pipe) -> List[Coin]:
        """Rolls for a coin in a freshly spawned pipe, skipping crowded spots."""
        if self.rng() >= COIN_SPAWN_CHANCE:
            return list(coins)
        if any(abs(c.x - pipe.x) < COIN_MIN_SPACING for c in coins):
            return list(coins)
        return list(coins) + [self.create_coin_in_gap(pipe)]

    def update_coins(self, coins: List[Coin], config: GameConfig, elapsed_ms: float) -> List[Coin]:
        """Scrolls coins with the pipes and drops collected or off-screen ones."""
        delta_x = config.pipe_speed * time_scale(elapsed_ms)
        moved = [replace(coin, x=coin.x - delta_x) for coin in coins]
        return [c for c in moved if c.x > COIN_DESPAWN_X and not c.collected]

    def check_coin_collection(self, player: Player, coins: List[Coin]) -> Tuple[List[Coin], CoinBatch]:
        """Marks every coin touching the hitbox as collected and batches them."""
        reach = player.hitbox_radius + COIN_RADIUS
        batch = CoinBatch()
        updated = []

        for coin in coins:
            if coin.collected:
                updated.append(coin)
                continue
            distance = math.hypot(player.center_x - coin.x, player.center_y - coin.y)
            if distance < reach:
                batch.coins.append(CollectedCoin(x=coin.x, y=coin.y, type=coin.type, value=coin.value))
                updated.append(replace(coin, collected=True))
            else:
                updated.append(coin)

        return updated, batch

    # ---------- Collision & scoring ----------

    def check_collision(self, player: Player, pipes: List[Pipe], config: GameConfig,
                        playfield: Playfield) -> bool:
        """
        Checks for collisions with floor, ceiling, or pipes.
        Touching a boundary exactly counts as a hit.
        """
        cx, cy = player.center_x, player.center_y
        r = player.hitbox_radius

        # 1. Floor/Ceiling Collision
        if cy + r >= playfield.height - playfield.ground_height:
            return True
        if cy - r <= 0:
            return True

        # 2. Pipe Collision
        half_gap = config.pipe_gap / 2
        for pipe in pipes:
            if cx + r >= pipe.x and cx - r <= pipe.x + config.pipe_width:
                if cy - r <= pipe.gap_y - half_gap or cy + r >= pipe.gap_y + half_gap:
                    return True

        return False

    def check_score(self, player: Player, pipes: List[Pipe]) -> Tuple[List[Pipe], int]:
        """Flags pipes the actor has just passed; returns how many were newly passed."""
        cx = player.center_x
        scored = 0
        updated = []

        for pipe in pipes:
            if not pipe.passed and pipe.x + PIPE_PASS_OFFSET < cx:
                scored += 1
                updated.append(replace(pipe, passed=True))
            else:
                updated.append(pipe)

        return updated, scored


def animation_frame(velocity: float) -> int:
    """Sprite frame for the actor: 1 wings up, 0 gliding, 2 mid."""
    if velocity < -2:
        return 1
    if velocity > 2:
        return 0
    return 2
