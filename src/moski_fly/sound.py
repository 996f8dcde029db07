"""
sound.py: Retro sound effects synthesized at startup and played through pygame.mixer.
"""

import logging
import math
from array import array
from typing import Dict, List, Optional, Tuple

import pygame

logger = logging.getLogger(__name__)

SAMPLE_RATE = 22050
VOLUME = 0.25

# (waveform, start Hz, end Hz, seconds, gain)
Segment = Tuple[str, float, float, float, float]

EFFECTS: Dict[str, List[Segment]] = {
    "flap": [("sine", 300, 600, 0.08, 0.3)],
    "coin": [("sine", 987, 987, 0.07, 0.6), ("sine", 1319, 1568, 0.18, 0.7)],
    "diamond": [("sine", f, f, 0.06, 0.6) for f in (1047, 1319, 1568, 2093)],
    "pipe": [("triangle", 440, 660, 0.12, 0.5)],
    "game_over": [("square", 440, 220, 0.15, 0.4), ("square", 220, 110, 0.35, 0.4)],
}

# Melody notes for the background loop, one every 180 ms.
MUSIC_NOTES = [523, 659, 784, 659, 587, 698, 880, 698, 523, 659, 784, 1047, 988, 784, 659, 587]
MUSIC_NOTE_S = 0.18


def _wave(kind: str, phase: float) -> float:
    if kind == "square":
        return 1.0 if math.sin(phase) >= 0 else -1.0
    if kind == "triangle":
        return 2.0 / math.pi * math.asin(math.sin(phase))
    return math.sin(phase)


def synthesize(segments: List[Segment], sample_rate: int = SAMPLE_RATE) -> array:
    """Renders frequency sweeps with a linear fade-out into signed 16-bit samples."""
    samples = array("h")
    phase = 0.0
    for kind, f_start, f_end, seconds, gain in segments:
        count = max(1, int(seconds * sample_rate))
        for i in range(count):
            t = i / count
            freq = f_start + (f_end - f_start) * t
            phase += 2 * math.pi * freq / sample_rate
            envelope = (1.0 - t) * gain * VOLUME
            samples.append(int(32767 * envelope * _wave(kind, phase)))
    return samples


class PygameSound:
    """
    Sound collaborator backed by pygame.mixer. When no audio device is
    available every call is a silent no-op.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._sounds: Dict[str, "pygame.mixer.Sound"] = {}
        self._music: Optional["pygame.mixer.Sound"] = None
        self._music_channel: Optional["pygame.mixer.Channel"] = None
        self._load()

    def _load(self):
        try:
            if not pygame.mixer.get_init():
                pygame.mixer.init(frequency=SAMPLE_RATE, size=-16, channels=1)
            frequency, _, channels = pygame.mixer.get_init()
            for name, segments in EFFECTS.items():
                self._sounds[name] = self._make_sound(segments, frequency, channels)
            melody = [("square", f, f, MUSIC_NOTE_S, 0.15) for f in MUSIC_NOTES]
            self._music = self._make_sound(melody, frequency, channels)
        except pygame.error as e:
            logger.warning("Audio unavailable, sound disabled: %s", e)
            self._sounds = {}
            self._music = None

    @staticmethod
    def _make_sound(segments: List[Segment], frequency: int, channels: int) -> "pygame.mixer.Sound":
        mono = synthesize(segments, frequency)
        if channels == 1:
            return pygame.mixer.Sound(buffer=mono.tobytes())
        interleaved = array("h", (s for s in mono for _ in range(channels)))
        return pygame.mixer.Sound(buffer=interleaved.tobytes())

    def play(self, name: str):
        if not self.enabled:
            return
        sound = self._sounds.get(name)
        if sound is None:
            return
        try:
            sound.play()
        except pygame.error as e:
            logger.debug("Could not play %s: %s", name, e)

    def start_music(self):
        if not self.enabled or self._music is None:
            return
        try:
            self._music_channel = self._music.play(loops=-1)
        except pygame.error as e:
            logger.debug("Could not start music: %s", e)

    def stop_music(self):
        if self._music_channel is not None:
            self._music_channel.stop()
            self._music_channel = None

    def set_enabled(self, enabled: bool):
        self.enabled = enabled
        if not enabled:
            self.stop_music()
