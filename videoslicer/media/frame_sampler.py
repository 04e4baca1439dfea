"""Per-chunk still-frame capture with per-handle serialization."""

from __future__ import annotations

import threading

from ..models.datatypes import MediaHandle
from .ffmpeg import MediaService

# Keeps a seek target strictly inside `[0, duration)`.
_END_EPSILON_SECONDS = 1e-3


class FrameSampler:
    """Capture cover frames through a `MediaService`.

    A media handle is not reentrant: only one seek+capture runs per handle at
    a time, even when chunk work is spread across worker threads.
    """

    def __init__(self, media: MediaService) -> None:
        self._media = media
        self._locks: dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def capture(self, handle: MediaHandle, time: float, duration: float | None = None) -> bytes:
        """Return JPEG bytes for the frame nearest `time`."""

        target = max(0.0, time)
        if duration is not None and duration > 0:
            target = min(target, max(0.0, duration - _END_EPSILON_SECONDS))
        with self._lock_for(handle):
            return self._media.capture_frame_at(handle, target)

    def release(self, handle: MediaHandle) -> None:
        """Forget the lock of a closed handle."""

        with self._locks_guard:
            self._locks.pop(handle.handle_id, None)

    def _lock_for(self, handle: MediaHandle) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(handle.handle_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[handle.handle_id] = lock
            return lock
