"""Tests for effect synthesis and the silent fallback of the sound player."""

import pytest

pygame = pytest.importorskip("pygame")

from moski_fly.sound import EFFECTS, PygameSound, synthesize  # noqa: E402


def test_synthesize_sample_count_and_range():
    samples = synthesize([("sine", 440, 440, 0.1, 1.0), ("square", 200, 100, 0.05, 1.0)], sample_rate=1000)
    assert len(samples) == 150
    assert all(-32768 <= s <= 32767 for s in samples)
    assert any(s != 0 for s in samples)


def test_every_effect_renders():
    for name, segments in EFFECTS.items():
        assert len(synthesize(segments, sample_rate=8000)) > 0, name


def test_disabled_player_is_silent(monkeypatch):
    monkeypatch.setattr(PygameSound, "_load", lambda self: None)
    sound = PygameSound(enabled=False)
    sound.play("flap")
    sound.start_music()
    sound.stop_music()
    assert sound._music_channel is None


def test_unknown_effect_ignored(monkeypatch):
    monkeypatch.setattr(PygameSound, "_load", lambda self: None)
    sound = PygameSound(enabled=True)
    sound.play("does-not-exist")
    sound.set_enabled(False)
    assert not sound.enabled
