"""Deferred flushes — run later, at most once, cancellable.

A FlushQueue schedules a callback for a later turn and returns a token that
can cancel it. Two implementations:

- ManualQueue: nothing runs until flush() is called. Deterministic; meant for
  tests and for hosts that drive their own loop.
- AsyncioQueue: loop.call_later(0, ...), a next-turn timer rather than a
  microtask, so every synchronous write of the current frame lands first.
  Writes made before any loop runs park their flush until one does.

ScheduledRun sits between a derivation and its queue and enforces the
"at most one pending token" rule.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Callable, Protocol

from reactref.errors import FlushLimitError

logger = logging.getLogger("reactref.scheduler")

Callback = Callable[[], None]


class FlushQueue(Protocol):
    def schedule(self, callback: Callback) -> Any: ...

    def cancel(self, token: Any) -> None: ...


class ManualQueue:
    """Queue drained explicitly with flush()."""

    def __init__(self, *, max_rounds: int = 100) -> None:
        self.max_rounds = max_rounds
        self._tasks: dict[int, Callback] = {}
        self._tokens = itertools.count(1)

    def schedule(self, callback: Callback) -> int:
        token = next(self._tokens)
        self._tasks[token] = callback
        return token

    def cancel(self, token: int) -> None:
        self._tasks.pop(token, None)

    def flush_pending(self) -> int:
        """Run the callbacks pending right now. Returns how many ran.

        Work scheduled by those callbacks stays queued for the next call.
        """
        ran = 0
        for token in list(self._tasks):
            # Popped one at a time: an earlier callback may cancel a later one.
            callback = self._tasks.pop(token, None)
            if callback is None:
                continue
            callback()
            ran += 1
        return ran

    def flush(self) -> int:
        """Run pending callbacks until the queue stays empty."""
        ran = 0
        rounds = 0
        while self._tasks:
            rounds += 1
            if rounds > self.max_rounds:
                logger.error("Flush did not settle after %d rounds", self.max_rounds)
                raise FlushLimitError(
                    f"still {len(self._tasks)} pending after {self.max_rounds} rounds"
                )
            ran += self.flush_pending()
        return ran

    def __len__(self) -> int:
        return len(self._tasks)

    def __repr__(self) -> str:
        return f"ManualQueue(pending={len(self._tasks)})"


class AsyncioQueue:
    """Queue backed by asyncio timers.

    Without an explicit loop, the loop running at schedule time is used. When
    no loop is running, callbacks are parked instead: they run on the first
    turn of the next loop that schedules work here, or on flush().
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None, *, delay: float = 0.0) -> None:
        self._loop = loop
        self.delay = delay
        self._backlog = ManualQueue()
        self._drain_loop: asyncio.AbstractEventLoop | None = None

    def schedule(self, callback: Callback) -> asyncio.TimerHandle | _Parked:
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                key = self._backlog.schedule(callback)
                logger.debug("No running event loop; parked flush #%d", key)
                return _Parked(key)
        if len(self._backlog) and self._drain_loop is not loop:
            self._drain_loop = loop
            loop.call_later(self.delay, self._drain_backlog)
        return loop.call_later(self.delay, callback)

    def cancel(self, token: asyncio.TimerHandle | _Parked) -> None:
        if isinstance(token, _Parked):
            self._backlog.cancel(token.key)
        else:
            token.cancel()

    def flush(self) -> int:
        """Run parked callbacks now. Returns how many ran."""
        return self._backlog.flush()

    def _drain_backlog(self) -> None:
        self._drain_loop = None
        self._backlog.flush_pending()

    def __len__(self) -> int:
        """Number of parked callbacks."""
        return len(self._backlog)

    def __repr__(self) -> str:
        return f"AsyncioQueue(delay={self.delay})"


class _Parked:
    """Token for a callback scheduled while no event loop was running."""

    __slots__ = ("key",)

    def __init__(self, key: int) -> None:
        self.key = key


class ScheduledRun:
    """One derivation's pending flush.

    arm() is a no-op while a flush is already pending, so any number of
    triggers in one frame collapse into a single run. `generation` counts the
    flushes armed so far.
    """

    __slots__ = ("_queue_source", "_callback", "_token", "generation")

    def __init__(self, queue_source: Callable[[], FlushQueue], callback: Callback) -> None:
        self._queue_source = queue_source
        self._callback = callback
        self._token: Any = None
        self.generation = 0

    @property
    def pending(self) -> bool:
        return self._token is not None

    def arm(self) -> bool:
        if self._token is not None:
            return False
        queue = self._queue_source()
        handle = queue.schedule(self._fire)
        self.generation += 1
        self._token = _Armed(queue, handle)
        return True

    def cancel(self) -> None:
        if self._token is None:
            return
        armed, self._token = self._token, None
        armed.queue.cancel(armed.handle)

    def _fire(self) -> None:
        self._token = None
        self._callback()


class _Armed:
    """A scheduled token plus the queue that issued it."""

    __slots__ = ("queue", "handle")

    def __init__(self, queue: FlushQueue, handle: Any) -> None:
        self.queue = queue
        self.handle = handle
