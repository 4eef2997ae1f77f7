from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from roster import Character
from scheduler import FrameHandle, FrameScheduler

SPIN_DURATION_MS = 3000
BASE_INTERVAL_MS = 50
MAX_EXTRA_INTERVAL_MS = 150

FALLBACK_CHARACTER = Character("?")

IDLE = "idle"
SPINNING = "spinning"

Window = Tuple[Optional[Character], Optional[Character], Optional[Character]]


def shuffled(items: Sequence[Character], rng=random) -> List[Character]:
    result = list(items)
    rng.shuffle(result)
    return result


def update_interval(elapsed_ms: float, duration_ms: float = SPIN_DURATION_MS) -> float:
    """Milliseconds between reel advances: fast at first, easing out."""
    fraction = min(max(elapsed_ms / duration_ms, 0.0), 1.0)
    return BASE_INTERVAL_MS + MAX_EXTRA_INTERVAL_MS * fraction ** 2


def final_window(
    target: Character, base_reel: Sequence[Character], rng=random
) -> Window:
    others = [c for c in base_reel if c.name != target.name]
    right = next(iter(shuffled(others, rng)), FALLBACK_CHARACTER)
    lefts = [c for c in others if c.name != right.name]
    left = next(iter(shuffled(lefts, rng)), FALLBACK_CHARACTER)
    return (left, target, right)


def idle_window(
    target: Optional[Character], roster: Sequence[Character], rng=random
) -> Window:
    if target is None:
        return (None, None, None)
    sides = shuffled([c for c in roster if c.name != target.name], rng)
    sides += [FALLBACK_CHARACTER, FALLBACK_CHARACTER]
    return (sides[0], target, sides[1])


class SpinAnimation:
    """
    Decelerating three-slot reel that settles with ``target`` in the center.

    Frames come from a FrameScheduler. on_frame(elapsed_ms, window) fires on
    every visible change and once more with the final window; on_complete
    fires exactly once unless the animation is cancelled first.
    """

    def __init__(
        self,
        target: Character,
        pool: Sequence[Character],
        roster: Sequence[Character],
        scheduler: FrameScheduler,
        on_frame: Optional[Callable[[float, Window], None]] = None,
        on_complete: Optional[Callable[[Character], None]] = None,
        rng=random,
        duration_ms: float = SPIN_DURATION_MS,
    ) -> None:
        self.target = target
        self.scheduler = scheduler
        self.on_frame = on_frame
        self.on_complete = on_complete
        self.duration_ms = duration_ms

        base_reel = shuffled(pool if len(pool) > 2 else roster, rng)
        self.reel: List[Character] = (base_reel * 3) or [target]
        self.final: Window = final_window(target, base_reel, rng)

        self.state = IDLE
        self.window: Window = (None, None, None)
        self._handle: Optional[FrameHandle] = None
        self._start: Optional[float] = None
        self._last_update: Optional[float] = None
        self._index = 0

    @property
    def spinning(self) -> bool:
        return self.state == SPINNING

    def start(self) -> None:
        if self.spinning:
            return
        self.state = SPINNING
        self._start = None
        self._last_update = None
        self._index = 0
        self._handle = self.scheduler.request_frame(self._step)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self.state = IDLE

    def _step(self, timestamp: float) -> None:
        self._handle = None
        if not self.spinning:
            return
        if self._start is None:
            self._start = timestamp
        elapsed = timestamp - self._start

        interval = update_interval(elapsed, self.duration_ms)
        if self._last_update is None or timestamp - self._last_update > interval:
            self._last_update = timestamp
            size = len(self.reel)
            self.window = (
                self.reel[self._index % size],
                self.reel[(self._index + 1) % size],
                self.reel[(self._index + 2) % size],
            )
            self._index += 1
            if self.on_frame:
                self.on_frame(elapsed, self.window)

        if elapsed < self.duration_ms:
            self._handle = self.scheduler.request_frame(self._step)
            return

        self.window = self.final
        if self.on_frame:
            self.on_frame(elapsed, self.window)
        # the final frame callback may have torn the spin down
        if not self.spinning:
            return
        self.state = IDLE
        if self.on_complete:
            self.on_complete(self.target)


def _names(window: Window) -> List[Optional[str]]:
    return [c.name if c is not None else None for c in window]


@dataclass
class SpinTimeline:
    target: Character
    frames: List[Tuple[float, Window]] = field(default_factory=list)
    final: Window = (None, None, None)
    elapsed_ms: float = 0.0

    def to_dict(self) -> Dict[str, object]:
        return {
            "target": self.target.name,
            "frames": [
                {"at": round(at, 1), "window": _names(window)}
                for at, window in self.frames
            ],
            "final": _names(self.final),
            "duration_ms": round(self.elapsed_ms, 1),
        }


def record_spin(
    target: Character,
    pool: Sequence[Character],
    roster: Sequence[Character],
    rng=random,
    duration_ms: float = SPIN_DURATION_MS,
    frame_ms: float = 1000 / 60,
) -> SpinTimeline:
    """Run a spin on a virtual clock and capture its frames for playback."""
    scheduler = FrameScheduler(frame_ms=frame_ms)
    timeline = SpinTimeline(target=target)

    def on_frame(elapsed, window):
        timeline.frames.append((elapsed, window))
        timeline.elapsed_ms = elapsed

    animation = SpinAnimation(
        target,
        pool,
        roster,
        scheduler,
        on_frame=on_frame,
        rng=rng,
        duration_ms=duration_ms,
    )
    timeline.final = animation.final
    animation.start()
    scheduler.run(max_frames=int(duration_ms / frame_ms) + 3)
    return timeline
