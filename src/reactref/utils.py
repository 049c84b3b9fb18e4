"""Leaf utilities: primitive classification, shallow copies, change test."""

from __future__ import annotations

import copy
import datetime
from typing import TypeVar

T = TypeVar("T")

_PRIMITIVES = (
    type(None),
    bool,
    int,
    float,
    complex,
    str,
    bytes,
    datetime.date,
    datetime.time,
    datetime.timedelta,
)


def is_primitive(value: object) -> bool:
    """True for immutable scalars and callables.

    Dates and times are immutable in Python, so they count as primitives.
    """
    from reactref.cell import Cell

    if isinstance(value, _PRIMITIVES):
        return True
    if isinstance(value, Cell):
        return False
    return callable(value)


def shallow_copy(value: T) -> T:
    """Copy one level deep. Tracked containers come back as plain builtins."""
    from reactref.cell import TrackedDict, TrackedList, TrackedSet

    if isinstance(value, (dict, TrackedDict)):
        return dict(value.items())
    if isinstance(value, (set, TrackedSet)):
        return set(value)
    if isinstance(value, (list, TrackedList)):
        return list(value)
    if is_primitive(value) or isinstance(value, (tuple, frozenset)):
        return value
    return copy.copy(value)


def has_changed(old: object, new: object) -> bool:
    """Would writing `new` over `old` be an observable change?"""
    if old is new:
        return False
    if not (is_primitive(old) and is_primitive(new)):
        return True
    # NaN != NaN, but rewriting NaN is not a change.
    if old != old and new != new:
        return False
    return old != new
