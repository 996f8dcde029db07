"""
session.py: Game-state transitions, score and combo bookkeeping, and the
hand-off to statistics, leaderboard and sound collaborators.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, List, Optional

from .collaborators import Collaborators
from .constants import (
    DEFAULT_CONFIG, GameConfig,
    COMBO_THRESHOLD, COMBO_MULTIPLIER,
    GROUND_TILE_PERIOD, IDLE_GROUND_STEP, IDLE_FLOAT_AMPLITUDE, IDLE_FLOAT_PERIOD_MS,
    PLAYER_Y_RATIO
)
from .data_models import Player, Pipe, Coin, CoinBatch, GameStats, Playfield, create_player
from .frame_scheduler import FrameScheduler
from .physics_core import PhysicsCore, time_scale

logger = logging.getLogger(__name__)

Listener = Callable[[str, dict], None]


class GameState(str, Enum):
    START = "START"
    PLAYING = "PLAYING"
    GAME_OVER = "GAME_OVER"


@dataclass
class SessionScore:
    pipe_score: int = 0
    coin_score: int = 0
    combo: int = 0
    max_combo: int = 0
    diamonds: int = 0

    @property
    def total(self) -> int:
        return self.pipe_score + self.coin_score


@dataclass
class SimulationState:
    """Everything the physics step reads and writes for one run."""
    player: Player
    pipes: List[Pipe] = field(default_factory=list)
    coins: List[Coin] = field(default_factory=list)
    ground_offset: float = 0.0


@dataclass
class TickReport:
    """What happened during one active tick."""
    scored: int = 0
    batch: CoinBatch = field(default_factory=CoinBatch)
    coin_points: int = 0
    collided: bool = False


class SessionController:
    """
    Owns the simulation state and drives START -> PLAYING -> GAME_OVER.

    ``update`` is the active per-tick callback and ``idle_update`` the
    ambient one; when a scheduler is attached the controller swaps which of
    the two it drives on every state change.
    """

    def __init__(self, config: GameConfig = DEFAULT_CONFIG, playfield: Optional[Playfield] = None,
                 collaborators: Optional[Collaborators] = None, physics: Optional[PhysicsCore] = None,
                 scheduler: Optional[FrameScheduler] = None):
        self.playfield = playfield or Playfield()
        self.collaborators = collaborators or Collaborators()
        self.physics = physics or PhysicsCore()

        self._config = config
        self._pending_config: Optional[GameConfig] = None
        self._listeners: List[Listener] = []

        self.state = GameState.START
        self.simulation = SimulationState(player=create_player(self.playfield))
        self.score = SessionScore()
        self.anim_time = 0.0
        self.input_blocked = False

        self.stats: GameStats = self._safe(self.collaborators.stats.load_stats, default=GameStats())
        self.high_score = self.stats.best_total

        self.scheduler = scheduler
        if scheduler is not None:
            self._sync_scheduler()
            scheduler.set_running(True)

    # ---------- Collaborator plumbing ----------

    def _safe(self, fn: Callable, *args, default: Any = None) -> Any:
        """Runs a collaborator call; any failure is logged and becomes ``default``."""
        try:
            return fn(*args)
        except Exception as e:
            logger.warning("Collaborator call %s failed: %s", getattr(fn, "__name__", fn), e)
            return default

    def subscribe(self, listener: Listener):
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: str, **data):
        for listener in list(self._listeners):
            self._safe(listener, event, data)

    def _play(self, name: str):
        self._safe(self.collaborators.sound.play, name)

    def _sync_scheduler(self):
        if self.scheduler is None:
            return
        if self.state is GameState.PLAYING:
            self.scheduler.set_callback(self.update)
        else:
            self.scheduler.set_callback(self.idle_update)

    def _set_state(self, state: GameState):
        previous = self.state
        self.state = state
        self._sync_scheduler()
        logger.info("Game state %s -> %s", previous.value, state.value)
        self._emit("state", previous=previous, state=state)

    # ---------- Configuration ----------

    @property
    def config(self) -> GameConfig:
        return self._config

    def set_config(self, config: GameConfig):
        """The replacement is picked up at the start of the next tick."""
        self._pending_config = config

    def _apply_pending_config(self):
        if self._pending_config is not None:
            self._config = self._pending_config
            self._pending_config = None

    # ---------- Transitions ----------

    def reset(self):
        """Fresh actor, one new pipe at the right edge, scores back to zero."""
        first_pipe = self.physics.spawn_pipe(self._config, self.playfield)
        self.simulation = SimulationState(
            player=create_player(self.playfield),
            pipes=[first_pipe],
            coins=self.physics.maybe_spawn_coin([], first_pipe),
        )
        self.score = SessionScore()

    def start_game(self):
        self.reset()
        self._safe(self.collaborators.sound.start_music)
        self._set_state(GameState.PLAYING)

    def handle_flap(self) -> bool:
        """The single impulse input. Returns False when the input was ignored."""
        if self.input_blocked:
            return False

        if self.state is GameState.START:
            self.start_game()
            self._flap()
        elif self.state is GameState.PLAYING:
            self._flap()
            self._play("flap")
        else:
            self.start_game()
        return True

    def _flap(self):
        sim = self.simulation
        sim.player = self.physics.flap(sim.player, self._config)

    def set_input_blocked(self, blocked: bool):
        self.input_blocked = blocked

    def _game_over(self):
        self._set_state(GameState.GAME_OVER)
        score = self.score
        total = score.total

        stats = self._safe(self.collaborators.stats.record_game_result,
                           score.pipe_score, score.coin_score, score.diamonds, score.max_combo)
        if stats is not None:
            self.stats = stats
            self.high_score = stats.best_total

        self._safe(self.collaborators.sound.stop_music)
        self._play("game_over")

        pseudo = self._safe(self.collaborators.leaderboard.get_pseudo)
        if pseudo and total > 0:
            self._safe(self.collaborators.leaderboard.submit_score_async, pseudo, total)

        self._emit("collision", pipe_score=score.pipe_score, coin_score=score.coin_score,
                   total=total, high_score=self.high_score)

    def reset_stats(self):
        self.stats = self._safe(self.collaborators.stats.reset_totals, default=GameStats())
        self.high_score = 0

    # ---------- Per-tick callbacks ----------

    def update(self, elapsed_ms: float) -> TickReport:
        """One active simulation tick. Does nothing outside PLAYING."""
        report = TickReport()
        if self.state is not GameState.PLAYING:
            return report

        self._apply_pending_config()
        config = self._config
        physics = self.physics
        sim = self.simulation

        ground_offset = (sim.ground_offset + config.pipe_speed * time_scale(elapsed_ms)) % GROUND_TILE_PERIOD
        player = physics.apply_gravity(sim.player, config, elapsed_ms)

        pipes, spawned = physics.update_pipes(sim.pipes, config, self.playfield, elapsed_ms)
        coins = sim.coins
        if spawned is not None:
            coins = physics.maybe_spawn_coin(coins, spawned)
        coins = physics.update_coins(coins, config, elapsed_ms)
        coins, batch = physics.check_coin_collection(player, coins)

        self.simulation = SimulationState(player=player, pipes=pipes, coins=coins, ground_offset=ground_offset)

        if batch:
            self._collect(batch, report)

        if physics.check_collision(player, pipes, config, self.playfield):
            report.collided = True
            self._game_over()
            return report

        self.simulation.pipes, report.scored = physics.check_score(player, pipes)
        if report.scored:
            self.score.pipe_score += report.scored
            self._play("pipe")
            self._emit("score", pipe_score=self.score.pipe_score)

        return report

    def _collect(self, batch: CoinBatch, report: TickReport):
        score = self.score
        score.combo += batch.count
        score.max_combo = max(score.max_combo, score.combo)
        score.diamonds += batch.rare_count

        multiplier = COMBO_MULTIPLIER if score.combo >= COMBO_THRESHOLD else 1
        points = batch.total_value * multiplier
        score.coin_score += points

        report.batch = batch
        report.coin_points = points

        self._play("diamond" if batch.rare_count else "coin")
        self._emit("coins", batch=batch, points=points, combo=score.combo, multiplier=multiplier,
                   coin_score=score.coin_score)

    def idle_update(self, elapsed_ms: float):
        """Ambient animation. On the start screen the actor floats; after a game it stays frozen."""
        self._apply_pending_config()
        self.anim_time += elapsed_ms
        if self.state is not GameState.START:
            return

        t = self.anim_time
        sim = self.simulation
        sim.ground_offset = (sim.ground_offset + IDLE_GROUND_STEP) % GROUND_TILE_PERIOD
        sim.player = replace(
            sim.player,
            y=self.playfield.height * PLAYER_Y_RATIO + math.sin(t / IDLE_FLOAT_PERIOD_MS) * IDLE_FLOAT_AMPLITUDE,
            rotation=math.sin(t / 800) * 5,
            velocity=math.sin(t / 300) * 5,
        )

    def close(self):
        if self.scheduler is not None:
            self.scheduler.set_running(False)
        self._safe(self.collaborators.sound.stop_music)
