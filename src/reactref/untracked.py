"""Untracked reads — look at state without depending on it.

Wrapping reads in @untracked or `with no_tracking()` keeps them out of the
dependency set of whatever effect, watcher or projection is running. Writes
still notify as usual.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import Callable, Iterator, ParamSpec, TypeVar

from reactref._tracking import current_derivation

P = ParamSpec("P")
R = TypeVar("R")


def untracked(fn: Callable[P, R]) -> Callable[P, R]:
    """Decorator: reads inside fn never become dependencies.

    Usage:
        total = create_cell(0)
        log = []

        @untracked
        def snapshot_total():
            return total.current

        run_effect(lambda: log.append(snapshot_total()))
        total.current = 5
        # the effect is not rescheduled: it never depended on total
    """

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        with no_tracking():
            return fn(*args, **kwargs)

    return wrapper


@contextmanager
def no_tracking() -> Iterator[None]:
    """Context manager for untracked reads.

    Usage:
        with no_tracking():
            value = cell.current  # no dependency recorded
    """
    token = current_derivation.set(None)
    try:
        yield
    finally:
        current_derivation.reset(token)
