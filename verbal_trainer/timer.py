"""Cancellable per-question countdown."""
from __future__ import annotations

import asyncio
from collections.abc import Callable

TickCallback = Callable[[int], None]
ExpireCallback = Callable[[], None]


class Countdown:
    """Counts down whole seconds; never calls back once cancelled.

    ``tick()`` advances one step.  :func:`start_countdown` drives it from the
    asyncio loop; tests may call it directly.
    """

    def __init__(self, duration: int, on_tick: TickCallback | None, on_expire: ExpireCallback):
        self.remaining = duration
        self._on_tick = on_tick
        self._on_expire = on_expire
        self._task: asyncio.Task | None = None
        self.cancelled = False
        self.expired = False

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.expired)

    def tick(self) -> None:
        if not self.active:
            return
        self.remaining -= 1
        if self._on_tick is not None:
            self._on_tick(self.remaining)
        # on_tick may have cancelled us (e.g. the learner answered)
        if self.remaining <= 0 and self.active:
            self.expired = True
            self._on_expire()

    def cancel(self) -> None:
        self.cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def _run(self, interval: float) -> None:
        while self.active:
            await asyncio.sleep(interval)
            self.tick()


def start_countdown(
    duration: int,
    on_tick: TickCallback | None,
    on_expire: ExpireCallback,
    interval: float = 1.0,
) -> Countdown:
    """Start a countdown on the running event loop and return its handle."""
    countdown = Countdown(duration, on_tick, on_expire)
    countdown._task = asyncio.get_running_loop().create_task(countdown._run(interval))
    return countdown
