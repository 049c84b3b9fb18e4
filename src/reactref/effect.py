"""Effects — side effects re-run after the state they read changes.

run_effect(fn) runs fn immediately to capture its dependencies. After that a
change never re-runs fn on the spot: it arms one deferred flush, and every
further change before the flush fires is absorbed into it. The flush re-runs
fn once, against the final state of the frame, and re-captures dependencies.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from reactref._tracking import Derivation
from reactref.scheduler import ScheduledRun

if TYPE_CHECKING:
    from reactref.runtime import Runtime

logger = logging.getLogger("reactref.effect")


class Effect(Derivation):
    """A reactive side effect with batched, deferred re-runs.

    The effect is its own disposer: `effect.dispose()` and `effect()` both
    stop it.
    """

    def __init__(self, fn: Callable[[], None], *, runtime: Runtime) -> None:
        super().__init__(runtime)
        self._fn = fn
        self._scheduled = ScheduledRun(lambda: runtime.queue, self._flush)

    @property
    def pending(self) -> bool:
        """True while a flush is armed and has not fired yet."""
        return self._scheduled.pending

    @property
    def generation(self) -> int:
        """How many deferred re-runs have been armed so far."""
        return self._scheduled.generation

    def _run(self) -> None:
        """Run fn, re-tracking dependencies."""
        if self._disposed:
            return
        self._running = True
        try:
            with self._runtime.recorder.recording(self):
                self._fn()
        finally:
            self._running = False

    def _notify(self) -> None:
        if self._scheduled.arm():
            logger.debug("%r armed flush #%d", self, self._scheduled.generation)

    def _flush(self) -> None:
        if self._disposed:
            return
        self._run()

    def dispose(self) -> None:
        """Stop this effect. Cancels a pending flush; safe to call twice."""
        if self._disposed:
            return
        self._disposed = True
        if self._scheduled.pending:
            logger.debug("%r disposed with a pending flush; cancelling", self)
        self._scheduled.cancel()
        self._release()

    def __call__(self) -> None:
        self.dispose()

    def __repr__(self) -> str:
        name = getattr(self._fn, "__name__", "effect")
        if self._disposed:
            state = "disposed"
        elif self._scheduled.pending:
            state = "pending"
        else:
            state = "idle"
        return f"Effect({name}, {state})"


def run_effect(fn: Callable[[], None], *, runtime: Runtime | None = None) -> Effect:
    """Run fn now, then once per flush whenever anything it read changes.

    Returns the Effect (call it, or its .dispose(), to stop).

    Usage:
        counter = create_cell({"count": 0})
        log = []

        stop = run_effect(lambda: log.append(counter.current["count"]))
        # log == [0]: ran immediately

        counter.current["count"] = 1
        counter.current["count"] = 2
        # log == [0]: re-run is deferred to the next flush

        # ... after the flush fires:
        # log == [0, 2]: one coalesced re-run, final state only

        stop()
    """
    if runtime is None:
        from reactref.runtime import get_runtime

        runtime = get_runtime()
    effect = Effect(fn, runtime=runtime)
    try:
        effect._run()  # Initial run to establish dependencies
    except Exception:
        effect.dispose()
        raise
    return effect
