"""Watchers — call back with the new value when a tracked source changes.

Unlike an Effect, which re-runs one function, a Watcher separates what it
reads (the source) from what it does (the callback):

- watch(cell, cb): cb(new, old) after cell.current is replaced.
- watch(lambda: expr, cb): cb(new, old) when expr's result changes.
- deep=True: also depend on everything reachable from the result, and fire
  on every change even when the result is the same object.

flush="sync" calls back inside the write that caused the change;
flush="deferred" coalesces changes through the runtime's queue like effects.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, TypeVar

from reactref._tracking import Derivation
from reactref.cell import Cell, _Tracked, traverse
from reactref.scheduler import ScheduledRun
from reactref.untracked import no_tracking
from reactref.utils import has_changed

if TYPE_CHECKING:
    from reactref.runtime import Runtime

logger = logging.getLogger("reactref.watch")

T = TypeVar("T")

FLUSH_MODES = ("sync", "deferred")

_UNSET = object()


def _as_getter(source, deep: bool) -> tuple[Callable[[], object], bool]:
    if isinstance(source, Cell):
        return (lambda: source.current), deep
    if isinstance(source, _Tracked):
        # A container can only change in place, so watching it means deep.
        return (lambda: source), True
    if callable(source):
        return source, deep
    raise TypeError(f"cannot watch {type(source).__name__}: expected a Cell, tracked container or callable")


class Watcher(Derivation):
    """Tracks a source; calls back when its value changes."""

    def __init__(
        self,
        source,
        callback: Callable[[T, T | None], None],
        *,
        runtime: Runtime,
        deep: bool = False,
        flush: str = "sync",
    ) -> None:
        if flush not in FLUSH_MODES:
            raise ValueError(f"flush must be one of {FLUSH_MODES}, got {flush!r}")
        super().__init__(runtime)
        self._getter, self._deep = _as_getter(source, deep)
        self._callback = callback
        self._flush_mode = flush
        self._scheduled = ScheduledRun(lambda: runtime.queue, self._run)
        self._last = _UNSET

    @property
    def value(self):
        """The source value seen by the last evaluation."""
        return None if self._last is _UNSET else self._last

    @property
    def pending(self) -> bool:
        return self._scheduled.pending

    def _evaluate(self):
        with self._runtime.recorder.recording(self):
            value = self._getter()
            if self._deep:
                traverse(value)
        return value

    def _start(self, immediate: bool) -> None:
        """First evaluation: capture dependencies, optionally call back."""
        self._running = True
        try:
            value = self._evaluate()
            self._last = value
            if immediate:
                with no_tracking():
                    self._callback(value, None)
        finally:
            self._running = False

    def _should_fire(self, old, new) -> bool:
        return self._deep or has_changed(old, new)

    def _run(self) -> None:
        if self._disposed:
            return
        self._running = True
        try:
            new = self._evaluate()
            if self._should_fire(self._last, new):
                old, self._last = self._last, new
                with no_tracking():
                    self._callback(new, old)
        finally:
            self._running = False

    def _notify(self) -> None:
        if self._flush_mode == "sync":
            self._run()
        elif self._scheduled.arm():
            logger.debug("%r armed flush #%d", self, self._scheduled.generation)

    def dispose(self) -> None:
        """Stop watching. Cancels a pending flush; safe to call twice."""
        if self._disposed:
            return
        self._disposed = True
        self._scheduled.cancel()
        self._release()

    def __call__(self) -> None:
        self.dispose()

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else self._flush_mode
        return f"{type(self).__name__}({state})"


def watch(
    source,
    callback: Callable[[T, T | None], None],
    *,
    deep: bool = False,
    immediate: bool = False,
    flush: str = "sync",
    runtime: Runtime | None = None,
) -> Watcher:
    """Call callback(new, old) whenever source's value changes.

    Returns the Watcher (call it, or its .dispose(), to stop).

    Usage:
        first = create_cell("Alice")
        last = create_cell("Smith")

        names = []
        w = watch(
            lambda: f"{first.current} {last.current}",
            lambda name, old: names.append(name),
        )
        # names == []: the source ran to establish deps, no callback yet

        first.current = "Bob"
        # names == ["Bob Smith"]

        w.dispose()
    """
    if runtime is None:
        from reactref.runtime import get_runtime

        runtime = get_runtime()
    watcher = Watcher(source, callback, runtime=runtime, deep=deep, flush=flush)
    try:
        watcher._start(immediate)
    except Exception:
        watcher.dispose()
        raise
    return watcher
