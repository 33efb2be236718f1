"""
Debounce timer over a cancellable scheduler.

DESIGN DECISION: Re-arming cancels the previous handle AND bumps a token.
The callback only runs if its token is still the latest, so a firing that
was already dequeued by the loop when cancel() ran cannot slip through.
At most one debounce callback per quiet period ever runs.
"""

import asyncio
from typing import Any, Callable, Optional, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> Any: ...


class Scheduler(Protocol):
    """Anything that can run a callback after a delay and cancel it."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopScheduler:
    """Default scheduler: the running asyncio loop's call_later."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


class DebounceTimer:
    """
    Runs `callback` once a quiet period of `delay` seconds has elapsed
    since the most recent arm().
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], None],
        scheduler: Optional[Scheduler] = None,
    ):
        if delay < 0:
            raise ValueError("Debounce delay cannot be negative")
        self.delay = delay
        self._callback = callback
        self._scheduler = scheduler or LoopScheduler()
        self._handle: Optional[TimerHandle] = None
        self._token = 0

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def arm(self) -> None:
        """(Re)start the quiet period, cancelling any earlier firing."""
        self.cancel()
        token = self._token

        def fire() -> None:
            if token != self._token:
                return
            self._handle = None
            self._callback()

        self._handle = self._scheduler.call_later(self.delay, fire)

    def cancel(self) -> None:
        self._token += 1
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
