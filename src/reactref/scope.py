"""Scope — the lifecycle of one host component.

The host framework activates a scope exactly once when its component mounts
and deactivates it exactly once when the component goes away. Everything
created through the scope while it is active (effects, lens watches,
projections, extra disposers) is torn down on deactivation, newest first.
Pending flushes are cancelled, never run.

    scope = runtime.scope().activate()
    count = scope.cell(0)
    scope.effect(lambda: render(count.current))
    ...
    scope.deactivate()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, TypeVar

from reactref.errors import ScopeError

if TYPE_CHECKING:
    from reactref.cell import Cell
    from reactref.effect import Effect
    from reactref.projection import Projection
    from reactref.runtime import Runtime
    from reactref.watch import Watcher

logger = logging.getLogger("reactref.scope")

T = TypeVar("T")
K = TypeVar("K")

IDLE = "idle"
ACTIVE = "active"
DISPOSED = "disposed"


class Scope:
    """Owns the disposers of everything created through it."""

    def __init__(self, runtime: Runtime) -> None:
        self._runtime = runtime
        self._state = IDLE
        self._disposers: list[Callable[[], None]] = []

    @property
    def runtime(self) -> Runtime:
        return self._runtime

    @property
    def state(self) -> str:
        return self._state

    @property
    def active(self) -> bool:
        return self._state == ACTIVE

    def activate(self) -> Scope:
        if self._state != IDLE:
            raise ScopeError(f"cannot activate a scope that is {self._state}")
        self._state = ACTIVE
        logger.debug("Activated %r", self)
        return self

    def deactivate(self) -> None:
        """Dispose everything this scope owns. Failures are logged, not raised."""
        if self._state != ACTIVE:
            raise ScopeError(f"cannot deactivate a scope that is {self._state}")
        self._state = DISPOSED
        disposers, self._disposers = self._disposers, []
        failed = 0
        for dispose in reversed(disposers):
            try:
                dispose()
            except Exception:
                failed += 1
                logger.exception("Disposer %r failed during scope teardown", dispose)
        logger.debug("Deactivated %r: %d disposed, %d failed", self, len(disposers), failed)

    def __enter__(self) -> Scope:
        return self.activate()

    def __exit__(self, *exc_info) -> None:
        self.deactivate()

    # --- Factories ---

    def add_disposer(self, dispose: Callable[[], None]) -> None:
        self._require_active()
        self._disposers.append(dispose)

    def cell(self, initial: T) -> Cell[T]:
        self._require_active()
        return self._runtime.cell(initial)

    def effect(self, fn: Callable[[], None]) -> Effect:
        self._require_active()
        effect = self._runtime.effect(fn)
        self._disposers.append(effect.dispose)
        return effect

    def watch(self, source, callback, **options) -> Watcher:
        self._require_active()
        watcher = self._runtime.watch(source, callback, **options)
        self._disposers.append(watcher.dispose)
        return watcher

    def lens(self, parent: Cell[T], selector: Callable[[Cell[T]], K]) -> Cell[K]:
        self._require_active()
        binding = self._runtime.bind_lens(parent, selector)
        self._disposers.append(binding.dispose)
        return binding.cell

    def project(self, source, *, flush: str = "deferred") -> Projection:
        self._require_active()
        projection = self._runtime.project(source, flush=flush)
        self._disposers.append(projection.dispose)
        return projection

    def _require_active(self) -> None:
        if self._state != ACTIVE:
            raise ScopeError(f"scope is {self._state}; activate it before use")

    def __repr__(self) -> str:
        return f"Scope({self._state}, owns={len(self._disposers)})"
