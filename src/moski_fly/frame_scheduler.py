"""
frame_scheduler.py: Display-frame pacing for the simulation and idle callbacks.
"""

import itertools
import logging
from typing import Callable, Dict, Optional

from .constants import MAX_FRAME_MS

logger = logging.getLogger(__name__)

FrameCallback = Callable[[float], None]


class FrameHost:
    """
    A display refresh source. Callbacks requested before a frame starts fire
    once on that frame with its timestamp; callbacks requested while a frame
    is running wait for the next one. The pygame client calls ``run_frame``
    once per rendered frame; tests call it directly.
    """

    def __init__(self):
        self._pending: Dict[int, Callable[[float], None]] = {}
        self._handles = itertools.count(1)

    def request_frame(self, callback: Callable[[float], None]) -> int:
        handle = next(self._handles)
        self._pending[handle] = callback
        return handle

    def cancel_frame(self, handle: int):
        self._pending.pop(handle, None)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def run_frame(self, timestamp_ms: float):
        """Fires every callback registered before this frame."""
        due = list(self._pending)
        for handle in due:
            # A callback earlier in this frame may have cancelled a later one.
            callback = self._pending.pop(handle, None)
            if callback is not None:
                callback(timestamp_ms)


class FrameScheduler:
    """
    Invokes one registered callback per display frame with the elapsed time
    since the previous invocation, capped at ``max_elapsed_ms``.

    Only one callback is registered at a time; switching between the active
    simulation and the idle animation is done with ``set_callback``.
    """

    def __init__(self, host: FrameHost, callback: FrameCallback, max_elapsed_ms: float = MAX_FRAME_MS):
        if max_elapsed_ms <= 0:
            raise ValueError("max_elapsed_ms must be positive")
        self._host = host
        self._callback = callback
        self.max_elapsed_ms = max_elapsed_ms

        self._handle: Optional[int] = None
        self._generation = 0
        self._last_time: Optional[float] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def callback(self) -> FrameCallback:
        return self._callback

    def set_callback(self, callback: FrameCallback):
        """Takes effect from the next frame."""
        self._callback = callback

    def set_running(self, should_run: bool):
        if should_run and not self._running:
            self._running = True
            self._generation += 1
            self._last_time = None
            self._handle = self._host.request_frame(self._make_loop(self._generation))
            logger.debug("Frame scheduler started (generation %d)", self._generation)
        elif not should_run and self._running:
            self._running = False
            self._generation += 1
            if self._handle is not None:
                self._host.cancel_frame(self._handle)
                self._handle = None
            logger.debug("Frame scheduler stopped")

    def _make_loop(self, generation: int) -> Callable[[float], None]:
        def loop(timestamp_ms: float):
            if generation != self._generation:
                return
            self._handle = None

            if self._last_time is None:
                self._last_time = timestamp_ms
            elapsed = min(max(timestamp_ms - self._last_time, 0.0), self.max_elapsed_ms)
            self._last_time = timestamp_ms

            self._callback(elapsed)

            # The callback may have stopped (or restarted) the scheduler.
            if generation == self._generation:
                self._handle = self._host.request_frame(loop)

        return loop
