"""Dependency recording — who read what during their last run.

Uses a contextvar to name the derivation (effect, watcher, projection) that is
currently running. Reads made while it is set become dependency edges
`(target id, key)` in the runtime's Recorder; writes look those edges up and
notify the derivations behind them.

Edges are rebuilt on every run: a fresh set is collected while the derivation
runs, then edges it no longer reads are unsubscribed. Conditional reads prune
themselves.
"""

from __future__ import annotations

import contextvars
import itertools
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Hashable, Iterable, Iterator

from reactref.errors import CycleError

if TYPE_CHECKING:
    from reactref.runtime import Runtime

logger = logging.getLogger("reactref.tracking")

DepKey = tuple[int, Hashable]


class _IterateKey:
    """Key recorded by reads that depend on a container's whole shape."""

    def __repr__(self) -> str:
        return "ITERATE"


ITERATE = _IterateKey()

# The currently-recording derivation, shared by every runtime. A Recorder only
# accepts derivations that belong to its own runtime.
current_derivation: contextvars.ContextVar[Derivation | None] = contextvars.ContextVar(
    "reactref_current_derivation", default=None
)

# Target ids are unique across runtimes.
_id_counter = itertools.count(1)


def new_id() -> int:
    return next(_id_counter)


class Derivation:
    """Anything that records dependencies while it runs.

    Subclasses implement `_notify()`, called synchronously when a dependency
    changes.
    """

    def __init__(self, runtime: Runtime) -> None:
        self._id = new_id()
        self._runtime = runtime
        self._dependencies: set[DepKey] = set()
        self._running = False
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def dependencies(self) -> frozenset[DepKey]:
        return frozenset(self._dependencies)

    def _notify(self) -> None:
        raise NotImplementedError

    def _release(self) -> None:
        self._runtime.recorder.release(self)


class Recorder:
    """Dependency edge table for one runtime."""

    def __init__(self, runtime: Runtime) -> None:
        self._runtime = runtime
        self._observers: dict[DepKey, set[Derivation]] = {}
        self._deriving: set[int] = set()

    def track(self, target_id: int, key: Hashable) -> None:
        """Record a read of `key` on `target_id` for the current derivation."""
        derivation = current_derivation.get()
        if derivation is None or derivation._runtime is not self._runtime:
            return
        if derivation._disposed:
            return
        dep = (target_id, key)
        self._observers.setdefault(dep, set()).add(derivation)
        derivation._dependencies.add(dep)

    def trigger(self, target_id: int, keys: Iterable[Hashable]) -> None:
        """Notify every derivation that read any of `keys` on `target_id`.

        Each derivation is notified once per call, and never while it is
        itself running. Every affected derivation is notified even if one of
        them raises; the first exception is re-raised afterwards.
        """
        affected: list[Derivation] = []
        seen: set[int] = set()
        for key in keys:
            for derivation in self._observers.get((target_id, key), ()):
                if derivation._id not in seen:
                    seen.add(derivation._id)
                    affected.append(derivation)
        error: Exception | None = None
        for derivation in affected:
            if derivation._running or derivation._disposed:
                continue
            try:
                derivation._notify()
            except Exception as exc:
                if error is None:
                    error = exc
                else:
                    logger.exception("Notifying %r also failed", derivation)
        if error is not None:
            raise error

    @contextmanager
    def recording(self, derivation: Derivation) -> Iterator[None]:
        """Run the body as `derivation`, replacing its edge set."""
        previous = derivation._dependencies
        derivation._dependencies = set()
        token = current_derivation.set(derivation)
        try:
            yield
        finally:
            current_derivation.reset(token)
            for dep in previous - derivation._dependencies:
                self._unsubscribe(dep, derivation)

    def release(self, derivation: Derivation) -> None:
        """Drop every edge of `derivation`."""
        for dep in derivation._dependencies:
            self._unsubscribe(dep, derivation)
        derivation._dependencies = set()

    def _unsubscribe(self, dep: DepKey, derivation: Derivation) -> None:
        observers = self._observers.get(dep)
        if observers is None:
            return
        observers.discard(derivation)
        if not observers:
            del self._observers[dep]

    def observer_count(self, target_id: int, key: Hashable) -> int:
        """Number of derivations depending on `key` of `target_id`."""
        return len(self._observers.get((target_id, key), ()))

    # --- Cycle detection for lenses ---

    @contextmanager
    def deriving(self, target_id: int) -> Iterator[None]:
        """Mark `target_id` as being derived; reading it meanwhile is a cycle."""
        self._deriving.add(target_id)
        try:
            yield
        finally:
            self._deriving.discard(target_id)

    def check_cycle(self, target_id: int) -> None:
        if target_id in self._deriving:
            raise CycleError(f"selector read the cell it derives (id={target_id})")


