"""Snapshot projections — plain, shallow-copied views of live tracked state.

project(cell) and project(lambda: expr) materialize a shallow copy right away
and re-materialize it after the state behind it changes. The snapshot is
plain data (dict, list, set or the primitive itself); writing to it never
reaches the cells it came from.

Emission rules after a change:
- primitive result: a new snapshot only if the value differs.
- same container as last time: always, since something inside it changed.
- a different container: unless its shallow copy equals the current snapshot.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Generic, TypeVar

from reactref.untracked import no_tracking
from reactref.utils import has_changed, is_primitive, shallow_copy
from reactref.watch import Watcher

if TYPE_CHECKING:
    from reactref.runtime import Runtime

logger = logging.getLogger("reactref.projection")

T = TypeVar("T")

Subscriber = Callable[[T], None]


class _SnapshotWatcher(Watcher):
    def _should_fire(self, old, new) -> bool:
        return not is_primitive(new) or has_changed(old, new)


class Projection(Generic[T]):
    """A live snapshot of a cell or an expression over cells."""

    def __init__(self, source, *, runtime: Runtime, flush: str = "deferred") -> None:
        self._subscribers: list[Subscriber] = []
        self._version = 0
        self._value: T | None = None
        self._watcher = _SnapshotWatcher(
            source, self._refresh, runtime=runtime, deep=True, flush=flush
        )
        try:
            self._watcher._start(immediate=False)
        except Exception:
            self._watcher.dispose()
            raise
        with no_tracking():
            self._value = shallow_copy(self._watcher.value)

    @property
    def value(self) -> T:
        """The current snapshot. Treat it as read-only."""
        return self._value

    @property
    def version(self) -> int:
        """Number of snapshots emitted after the initial one."""
        return self._version

    @property
    def pending(self) -> bool:
        return self._watcher.pending

    @property
    def disposed(self) -> bool:
        return self._watcher.disposed

    def _refresh(self, new, old) -> None:
        snapshot = shallow_copy(new)
        if new is not old and not is_primitive(new) and snapshot == self._value:
            return
        self._value = snapshot
        self._version += 1
        logger.debug("%r re-materialized (version %d)", self, self._version)
        for callback in list(self._subscribers):
            callback(snapshot)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Call callback(snapshot) on every new snapshot. Returns a function that removes it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass  # already removed

        return _unsubscribe

    def dispose(self) -> None:
        """Stop updating. The last snapshot stays readable."""
        self._watcher.dispose()
        self._subscribers.clear()

    def __call__(self) -> None:
        self.dispose()

    def __repr__(self) -> str:
        state = "disposed" if self._watcher.disposed else f"v{self._version}"
        return f"Projection({self._value!r}, {state})"


def project(source, *, flush: str = "deferred", runtime: Runtime | None = None) -> Projection:
    """Snapshot source now and again after every change behind it.

    Usage:
        tags = create_cell({1, 2, 3})
        snap = project(tags)
        first = snap.value          # {1, 2, 3}, a plain set

        tags.current.add(4)
        # ... after the flush fires:
        snap.value                  # {1, 2, 3, 4}
        snap.value is first         # False
    """
    if runtime is None:
        from reactref.runtime import get_runtime

        runtime = get_runtime()
    return Projection(source, runtime=runtime, flush=flush)
