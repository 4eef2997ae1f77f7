from __future__ import annotations

from typing import Callable, List, Optional

FrameCallback = Callable[[float], None]


class FrameHandle:
    __slots__ = ("callback", "cancelled")

    def __init__(self, callback: FrameCallback) -> None:
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FrameScheduler:
    """
    Cooperative animation-frame loop driven by a virtual clock.

    Callbacks queued with request_frame() run once, on the next frame, with
    the frame timestamp in milliseconds. A cancelled handle never fires.
    """

    def __init__(self, frame_ms: float = 1000 / 60, start_ms: float = 0.0) -> None:
        if frame_ms <= 0:
            raise ValueError("frame_ms must be positive")
        self.frame_ms = frame_ms
        self.now = start_ms
        self._pending: List[FrameHandle] = []

    @property
    def pending(self) -> int:
        return sum(1 for h in self._pending if not h.cancelled)

    def request_frame(self, callback: FrameCallback) -> FrameHandle:
        handle = FrameHandle(callback)
        self._pending.append(handle)
        return handle

    def tick(self) -> int:
        """Advance one frame and run everything queued before it."""
        self.now += self.frame_ms
        due, self._pending = self._pending, []
        fired = 0
        for handle in due:
            if handle.cancelled:
                continue
            handle.callback(self.now)
            fired += 1
        return fired

    def run(self, max_frames: Optional[int] = None) -> int:
        frames = 0
        while self.pending:
            if max_frames is not None and frames >= max_frames:
                break
            self.tick()
            frames += 1
        return frames

    def advance(self, ms: float) -> int:
        until = self.now + ms
        frames = 0
        while self.now + self.frame_ms <= until:
            self.tick()
            frames += 1
        return frames
