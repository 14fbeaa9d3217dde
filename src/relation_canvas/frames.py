"""Per-frame callback scheduling.

The host drives frames (a GUI timer, a vsync callback, a test calling
``run_frame()``).  Everything that wants to happen "on the next frame"
registers a callback under a key; requesting the same key again before the
frame runs is a no-op, so a burst of pointer events produces one flush and
one redraw.
"""

from __future__ import annotations

import logging
from typing import Callable, Hashable

logger = logging.getLogger(__name__)


class FrameScheduler:
    """Coalesces callbacks until the next ``run_frame()``."""

    def __init__(self):
        self._pending: dict[Hashable, Callable[[], None]] = {}
        self.frame_count = 0

    def request_frame(self, callback: Callable[[], None], key: Hashable = None) -> bool:
        """Schedule ``callback`` for the next frame.

        Args:
            callback: Zero-argument callable.
            key: Coalescing key; defaults to the callback itself.

        Returns:
            True if newly scheduled, False if already pending.
        """
        key = callback if key is None else key
        if key in self._pending:
            return False
        self._pending[key] = callback
        return True

    def cancel(self, key: Hashable) -> None:
        self._pending.pop(key, None)

    @property
    def pending(self) -> bool:
        return bool(self._pending)

    def run_frame(self) -> int:
        """Run every pending callback once, in request order.

        Callbacks requested while the frame runs land in the next frame.
        Returns the number of callbacks run.
        """
        callbacks = list(self._pending.values())
        self._pending = {}
        self.frame_count += 1
        for callback in callbacks:
            callback()
        if callbacks:
            logger.debug(f"Frame {self.frame_count}: ran {len(callbacks)} callbacks")
        return len(callbacks)

    def flush(self, max_frames: int = 10) -> None:
        """Run frames until nothing is pending (bounded)."""
        for _ in range(max_frames):
            if not self._pending:
                return
            self.run_frame()
