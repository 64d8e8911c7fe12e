"""In-memory frame source for replays, demos and tests."""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Sequence

    import numpy as np


class ReplayCapture:
    """Serve a fixed sequence of frames, optionally paced and looped."""

    def __init__(
        self,
        frames: Sequence[np.ndarray],
        *,
        fps: float | None = None,
        loop: bool = False,
    ) -> None:
        """Serve ``frames`` in order; ``fps=None`` serves them as fast as read."""
        self.frames = list(frames)
        self.fps = fps
        self.loop = loop
        self._index = 0
        self._opened = False
        self._last_read: float | None = None
        self._lock = threading.Lock()

    def open(self) -> bool:
        """Rewind and open the replay."""
        with self._lock:
            self._index = 0
            self._last_read = None
            self._opened = bool(self.frames)
        return self._opened

    def read(self) -> tuple[bool, np.ndarray | None]:
        """Return the next frame, sleeping to honour ``fps`` when set."""
        with self._lock:
            if not self._opened:
                return False, None
            if self._index >= len(self.frames):
                if not self.loop:
                    self._opened = False
                    return False, None
                self._index = 0
            frame = self.frames[self._index]
            self._index += 1
            last_read = self._last_read
            self._last_read = time.perf_counter()

        if self.fps and last_read is not None:
            wait = 1.0 / self.fps - (time.perf_counter() - last_read)
            if wait > 0:
                time.sleep(wait)
        return True, frame

    def release(self) -> None:
        """Close the replay."""
        with self._lock:
            self._opened = False

    def is_opened(self) -> bool:
        """Return True while frames remain (or looping)."""
        with self._lock:
            return self._opened

    def get_info(self) -> dict:
        """Return backend metadata for diagnostics."""
        height, width = self.frames[0].shape[:2] if self.frames else (0, 0)
        return {
            "backend": "Replay",
            "source": f"{len(self.frames)} frames",
            "width": width,
            "height": height,
            "fps": float(self.fps or 0.0),
        }
