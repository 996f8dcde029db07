#!/usr/bin/env python3
"""
flappy_client.py

Pygame front end: window, input routing, overlays and rendering.
The simulation itself lives in session.py and physics_core.py.
"""

import argparse
import logging
import math
import os
from dataclasses import replace
from typing import List, Optional

import pygame

from .collaborators import Collaborators, default_collaborators
from .constants import (
    DATA_DIR, DEFAULT_CONFIG, GameConfig, PROFILE_FILE, RENDER_FPS,
    SCREEN_WIDTH, SCREEN_HEIGHT, COIN_RADIUS,
    PSEUDO_MAX_LENGTH, UPDATE_VERSION, COMBO_THRESHOLD
)
from .data_models import CoinType, LeaderboardEntry, Playfield
from .frame_scheduler import FrameHost, FrameScheduler
from .physics_core import animation_frame
from .session import GameState, SessionController
from .storage import LocalStorage

logger = logging.getLogger(__name__)

UPDATE_SEEN_KEY = "moski_update_seen"

SKY = (78, 192, 202)
PIPE_BODY = (115, 191, 46)
PIPE_DARK = (85, 139, 47)
GROUND = (222, 216, 149)
GRASS = (93, 190, 74)
PANEL = (222, 216, 149)
PANEL_TEXT = (84, 56, 71)
WHITE = (255, 255, 255)
COIN_COLOR = (255, 204, 0)
DIAMOND_COLOR = (120, 220, 255)
PLAYER_COLORS = [(235, 160, 60), (250, 190, 80), (240, 175, 70)]


class FlappyClient:
    def __init__(self, config: GameConfig = DEFAULT_CONFIG, playfield: Optional[Playfield] = None,
                 collaborators: Optional[Collaborators] = None, profile: Optional[LocalStorage] = None,
                 fps: int = RENDER_FPS, dev_mode: bool = False):
        pygame.init()
        self.playfield = playfield or Playfield()
        self.screen = pygame.display.set_mode((int(self.playfield.width), int(self.playfield.height)))
        pygame.display.set_caption("Moski Fly")

        self.collaborators = collaborators or Collaborators()
        self.profile = profile
        self.fps = fps
        self.dev_mode = dev_mode

        # --- Game Logic ---
        self.frame_host = FrameHost()
        self.scheduler = FrameScheduler(self.frame_host, lambda elapsed: None)
        self.controller = SessionController(
            config=config,
            playfield=self.playfield,
            collaborators=self.collaborators,
            scheduler=self.scheduler,
        )
        self.controller.subscribe(self._on_game_event)

        # --- Overlay State ---
        self.pseudo: Optional[str] = self._safe_pseudo()
        self.name_buffer = ""
        self.name_error = ""
        self.show_stats = False
        self.show_leaderboard = False
        self.leaderboard_entries: List[LeaderboardEntry] = []
        self.show_update_note = profile is not None and profile.get(UPDATE_SEEN_KEY) != UPDATE_VERSION
        self.combo_flash_ms = 0.0
        self._refresh_input_block()

        self.clock = pygame.time.Clock()
        self.large_font = pygame.font.Font(None, 48)
        self.font = pygame.font.Font(None, 26)

    def _safe_pseudo(self) -> Optional[str]:
        try:
            return self.collaborators.leaderboard.get_pseudo()
        except Exception as e:
            logger.warning("Could not read pseudo: %s", e)
            return None

    def _refresh_input_block(self):
        """Impulses are ignored while any text entry or modal overlay is open."""
        blocked = (not self.pseudo) or self.show_stats or self.show_leaderboard or self.show_update_note
        self.controller.set_input_blocked(blocked)

    def _on_game_event(self, event: str, data: dict):
        if event == "coins" and data["combo"] >= COMBO_THRESHOLD:
            self.combo_flash_ms = 800.0

    def run(self):
        """The main client execution loop."""
        running = True
        while running:
            frame_ms = self.clock.tick(self.fps)
            self.combo_flash_ms = max(0.0, self.combo_flash_ms - frame_ms)

            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.KEYDOWN:
                    running = self._handle_key(event)
                elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                    self.controller.handle_flap()

            # One display frame: the scheduler's registered callback runs here.
            self.frame_host.run_frame(pygame.time.get_ticks())
            self._draw_game()

        self.controller.close()
        pygame.quit()

    # ---------- Input ----------

    def _handle_key(self, event) -> bool:
        if event.key == pygame.K_ESCAPE:
            if self.show_stats or self.show_leaderboard:
                self.show_stats = self.show_leaderboard = False
                self._refresh_input_block()
                return True
            return False

        if not self.pseudo:
            self._handle_name_entry(event)
            return True

        if self.show_update_note:
            if event.key in (pygame.K_RETURN, pygame.K_SPACE):
                self.show_update_note = False
                if self.profile is not None:
                    self.profile.set(UPDATE_SEEN_KEY, UPDATE_VERSION)
                self._refresh_input_block()
            return True

        if event.key in (pygame.K_SPACE, pygame.K_UP):
            self.controller.handle_flap()
        elif self.controller.state is not GameState.PLAYING:
            self._handle_menu_key(event)
        if self.dev_mode:
            self._handle_dev_key(event)
        return True

    def _handle_name_entry(self, event):
        if event.key == pygame.K_RETURN:
            candidate = self.name_buffer.strip()
            if not candidate:
                return
            available = getattr(self.collaborators.leaderboard, "is_pseudo_available", None)
            if available is not None and not available(candidate):
                self.name_error = "Name already taken"
                return
            save = getattr(self.collaborators.leaderboard, "save_pseudo", None)
            self.pseudo = save(candidate) if save is not None else candidate
            self.name_error = ""
            self._refresh_input_block()
        elif event.key == pygame.K_BACKSPACE:
            self.name_buffer = self.name_buffer[:-1]
        elif event.unicode and event.unicode.isprintable() and len(self.name_buffer) < PSEUDO_MAX_LENGTH:
            self.name_buffer += event.unicode

    def _handle_menu_key(self, event):
        if event.key == pygame.K_s:
            self.show_stats = not self.show_stats
            self.show_leaderboard = False
        elif event.key == pygame.K_l:
            self.show_leaderboard = not self.show_leaderboard
            self.show_stats = False
            if self.show_leaderboard:
                self.leaderboard_entries = self.collaborators.leaderboard.fetch_top_entries()
        elif event.key == pygame.K_r and self.show_stats:
            self.controller.reset_stats()
            self.show_stats = False
        elif event.key == pygame.K_m:
            sound = self.collaborators.sound
            if hasattr(sound, "set_enabled"):
                sound.set_enabled(not sound.enabled)
        self._refresh_input_block()

    def _handle_dev_key(self, event):
        config = self.controller.config
        if event.key == pygame.K_LEFTBRACKET:
            config = replace(config, gravity=max(0.05, config.gravity - 0.05))
        elif event.key == pygame.K_RIGHTBRACKET:
            config = replace(config, gravity=config.gravity + 0.05)
        elif event.key == pygame.K_MINUS:
            config = replace(config, pipe_speed=max(0.5, config.pipe_speed - 0.5))
        elif event.key == pygame.K_EQUALS:
            config = replace(config, pipe_speed=config.pipe_speed + 0.5)
        else:
            return
        logger.info("Dev config: %s", config)
        self.controller.set_config(config)

    # ---------- Rendering ----------

    def _draw_game(self):
        """Renders the game state using Pygame."""
        screen = self.screen
        screen.fill(SKY)
        sim = self.controller.simulation
        config = self.controller.config
        width, height = self.playfield.width, self.playfield.height
        ground_y = height - self.playfield.ground_height

        # Draw Pipes
        for pipe in sim.pipes:
            gap_top = pipe.gap_y - config.pipe_gap / 2
            gap_bottom = pipe.gap_y + config.pipe_gap / 2
            pygame.draw.rect(screen, PIPE_BODY, (pipe.x, 0, config.pipe_width, gap_top))
            pygame.draw.rect(screen, PIPE_BODY, (pipe.x, gap_bottom, config.pipe_width, ground_y - gap_bottom))
            pygame.draw.rect(screen, PIPE_DARK, (pipe.x - 6, gap_top - 26, config.pipe_width + 12, 26))
            pygame.draw.rect(screen, PIPE_DARK, (pipe.x - 6, gap_bottom, config.pipe_width + 12, 26))

        # Draw Coins
        for coin in sim.coins:
            if coin.collected:
                continue
            bob = math.sin(self.controller.anim_time / 200 + coin.x * 0.01) * 6
            color = DIAMOND_COLOR if coin.type is CoinType.RARE else COIN_COLOR
            pygame.draw.circle(screen, color, (int(coin.x), int(coin.y + bob)), COIN_RADIUS // 2)

        # Ground
        pygame.draw.rect(screen, GROUND, (0, ground_y, width, self.playfield.ground_height))
        pygame.draw.rect(screen, GRASS, (0, ground_y, width, 12))
        offset = sim.ground_offset
        for i in range(-1, int(width // 24) + 3):
            x = i * 24 - offset
            if i % 2 == 0:
                pygame.draw.rect(screen, PIPE_DARK, (x, ground_y + 12, 12, 6))

        # Player
        player = sim.player
        center = (int(player.center_x), int(player.center_y))
        color = PLAYER_COLORS[animation_frame(player.velocity)]
        pygame.draw.circle(screen, color, center, int(player.hitbox_radius))
        angle = math.radians(player.rotation)
        beak = (center[0] + math.cos(angle) * player.hitbox_radius * 1.4,
                center[1] + math.sin(angle) * player.hitbox_radius * 1.4)
        pygame.draw.line(screen, PANEL_TEXT, center, beak, 4)

        self._draw_hud()
        self._draw_overlays()
        pygame.display.flip()

    def _blit_centered(self, text: str, y: float, font=None, color=WHITE):
        surf = (font or self.font).render(text, True, color)
        self.screen.blit(surf, (self.playfield.width // 2 - surf.get_width() // 2, y))

    def _draw_hud(self):
        score = self.controller.score
        if self.controller.state is GameState.PLAYING:
            self._blit_centered(str(score.pipe_score), 40, self.large_font)
            coins = self.font.render(f"Coins: {score.coin_score}", True, COIN_COLOR)
            self.screen.blit(coins, (self.playfield.width - coins.get_width() - 12, 12))
            if self.combo_flash_ms > 0:
                self._blit_centered(f"COMBO x{score.combo}!", 95, self.font, DIAMOND_COLOR)
        if self.dev_mode:
            config = self.controller.config
            dev = self.font.render(f"g={config.gravity:.2f} speed={config.pipe_speed:.1f}", True, PANEL_TEXT)
            self.screen.blit(dev, (10, self.playfield.height - 26))

    def _draw_panel(self, lines: List[str], title: str):
        panel_w = self.playfield.width - 40
        panel_h = 60 + 26 * len(lines)
        top = max(20, (self.playfield.height - panel_h) // 2)
        pygame.draw.rect(self.screen, PANEL, (20, top, panel_w, panel_h), border_radius=10)
        pygame.draw.rect(self.screen, PANEL_TEXT, (20, top, panel_w, panel_h), width=4, border_radius=10)
        self._blit_centered(title, top + 14, self.font, PANEL_TEXT)
        for i, line in enumerate(lines):
            self._blit_centered(line, top + 46 + i * 26, self.font, PANEL_TEXT)

    def _draw_overlays(self):
        controller = self.controller
        height = self.playfield.height

        if not self.pseudo:
            lines = [self.name_buffer + "_", "ENTER to confirm"]
            if self.name_error:
                lines.append(self.name_error)
            self._draw_panel(lines, "Choose your name")
            return
        if self.show_update_note and controller.state is GameState.START:
            self._draw_panel(["Coins & diamonds to collect", "Combo system (x2 at 3+)",
                              "Saved statistics", "Achievement at 20 pts", "ENTER to continue"],
                             f"What's new? {UPDATE_VERSION}")
            return
        if self.show_stats:
            s = controller.stats
            self._draw_panel([
                f"Games: {s.total_games}",
                f"Pipes: {s.total_pipe_score}  Coins: {s.total_coin_score}",
                f"Diamonds: {s.total_diamonds}",
                f"Best total: {s.best_total}",
                f"Best pipes: {s.best_pipes}  Best coins: {s.best_coins}",
                f"Best combo: {s.best_combo}",
                "Achievement 20: " + ("unlocked" if s.achievement20 else "locked"),
                "R to reset, ESC to close",
            ], "Statistics")
            return
        if self.show_leaderboard:
            lines = [f"{i + 1}. {e.pseudo}  {e.score}" for i, e in enumerate(self.leaderboard_entries[:15])]
            self._draw_panel(lines or ["No scores yet"], "Leaderboard")
            return

        if controller.state is GameState.START:
            self._blit_centered("Moski Fly", height * 0.2, self.large_font)
            self._blit_centered("SPACE / Click to fly", height * 0.6)
            self._blit_centered(f"Best: {controller.high_score}", height * 0.6 + 30)
            self._blit_centered("S = Stats | L = Leaderboard | M = Sound", height * 0.6 + 60)
        elif controller.state is GameState.GAME_OVER:
            score = controller.score
            self._draw_panel([
                f"Pipes: {score.pipe_score}",
                f"Coins: {score.coin_score}",
                f"Total: {score.total}",
                f"Best: {controller.high_score}",
                "SPACE to play again",
            ], "Game Over")


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Moski Fly")
    p.add_argument("--width", type=int, default=SCREEN_WIDTH)
    p.add_argument("--height", type=int, default=SCREEN_HEIGHT)
    p.add_argument("--fps", type=int, default=RENDER_FPS)
    p.add_argument("--data-dir", default=DATA_DIR, help="Where stats and the leaderboard are stored.")
    p.add_argument("--mute", action="store_true")
    p.add_argument("--dev", action="store_true", help="Enable live tuning keys ([ ] gravity, - = speed).")
    p.add_argument("--log-level", default="INFO")
    for name in ("gravity", "flap_strength", "terminal_velocity", "pipe_speed",
                 "pipe_gap", "pipe_width", "pipe_spacing"):
        p.add_argument("--" + name.replace("_", "-"), dest=name, type=float, default=None)
    return p.parse_args(argv)


def config_from_args(args) -> GameConfig:
    overrides = {
        name: getattr(args, name)
        for name in ("gravity", "flap_strength", "terminal_velocity", "pipe_speed",
                     "pipe_gap", "pipe_width", "pipe_spacing")
        if getattr(args, name) is not None
    }
    return replace(DEFAULT_CONFIG, **overrides)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    pygame.mixer.pre_init(22050, -16, 1)
    profile = LocalStorage(os.path.join(args.data_dir, PROFILE_FILE))
    collaborators = default_collaborators(args.data_dir, sound_enabled=not args.mute, profile=profile)

    client = FlappyClient(
        config=config_from_args(args),
        playfield=Playfield(width=args.width, height=args.height),
        collaborators=collaborators,
        profile=profile,
        fps=args.fps,
        dev_mode=args.dev,
    )
    client.run()


if __name__ == "__main__":
    main()
