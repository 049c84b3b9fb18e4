"""Runtime — one dependency table plus one flush queue.

Every cell, effect, watcher and projection belongs to exactly one Runtime.
Runtimes never see each other's reads, so independent runtimes (one per test,
one per app) coexist without interference.

The module-level shortcuts (create_cell, run_effect, ...) use a default
runtime, created on first use with an AsyncioQueue. Call configure() once at
startup to change its queue, or install a runtime of your own:

    reactref.configure(queue=TextualQueue(app))

    with use_runtime(Runtime(queue=ManualQueue())):
        ...
"""

from __future__ import annotations

import itertools
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, Iterator, TypeVar

from reactref._tracking import Recorder
from reactref.cell import Cell
from reactref.effect import run_effect
from reactref.lens import LensBinding, bind_lens, derive_lens
from reactref.projection import Projection, project
from reactref.scheduler import AsyncioQueue, FlushQueue
from reactref.untracked import no_tracking
from reactref.watch import Watcher, watch

if TYPE_CHECKING:
    from reactref.effect import Effect
    from reactref.scope import Scope

logger = logging.getLogger("reactref.runtime")

T = TypeVar("T")
K = TypeVar("K")

_names = itertools.count(1)


class Runtime:
    """Owns the dependency table and the flush queue for its derivations."""

    def __init__(self, queue: FlushQueue | None = None, *, name: str | None = None) -> None:
        self.name = name or f"runtime-{next(_names)}"
        self.queue: FlushQueue = queue if queue is not None else AsyncioQueue()
        self.recorder = Recorder(self)

    def cell(self, initial: T) -> Cell[T]:
        return Cell(initial, runtime=self)

    def effect(self, fn: Callable[[], None]) -> Effect:
        return run_effect(fn, runtime=self)

    def watch(self, source, callback, *, deep: bool = False, immediate: bool = False, flush: str = "sync") -> Watcher:
        return watch(source, callback, deep=deep, immediate=immediate, flush=flush, runtime=self)

    def lens(self, parent: Cell[T], selector: Callable[[Cell[T]], K]) -> Cell[K]:
        self._check_owner(parent)
        return derive_lens(parent, selector)

    def bind_lens(self, parent: Cell[T], selector: Callable[[Cell[T]], K]) -> LensBinding[T, K]:
        self._check_owner(parent)
        return bind_lens(parent, selector)

    def project(self, source, *, flush: str = "deferred") -> Projection:
        return project(source, flush=flush, runtime=self)

    def scope(self) -> Scope:
        from reactref.scope import Scope

        return Scope(self)

    def untracked(self):
        """Context manager: reads in the body record no dependencies."""
        return no_tracking()

    def _check_owner(self, cell: Cell) -> None:
        if cell.runtime is not self:
            raise ValueError(f"{cell!r} belongs to {cell.runtime!r}, not {self!r}")

    def __repr__(self) -> str:
        return f"Runtime({self.name!r}, {self.queue!r})"


_default: Runtime | None = None


def get_runtime() -> Runtime:
    """Return the default runtime, creating it on first use."""
    global _default
    if _default is None:
        _default = Runtime(name="default")
        logger.debug("Created default %r", _default)
    return _default


def set_runtime(runtime: Runtime | None) -> Runtime | None:
    """Install runtime as the default. Returns the previous one.

    Passing None resets to a fresh default on next use.
    """
    global _default
    previous, _default = _default, runtime
    return previous


@contextmanager
def use_runtime(runtime: Runtime) -> Iterator[Runtime]:
    """Make runtime the default for the body, then restore the previous one."""
    previous = set_runtime(runtime)
    try:
        yield runtime
    finally:
        set_runtime(previous)


def configure(*, queue: FlushQueue | None = None) -> Runtime:
    """Configure the default runtime. Call once, before effects are pending.

    Usage:
        reactref.configure(queue=ManualQueue())
    """
    runtime = get_runtime()
    if queue is not None:
        runtime.queue = queue
        logger.info("Default runtime now flushes through %r", queue)
    return runtime


def create_cell(initial: T, *, runtime: Runtime | None = None) -> Cell[T]:
    """Create a tracked cell holding initial.

    Usage:
        counter = create_cell({"count": 0})
        counter.current["count"] += 1
    """
    return Cell(initial, runtime=runtime if runtime is not None else get_runtime())
