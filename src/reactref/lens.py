"""Lenses — child cells derived from a parent cell through a selector.

derive_lens(parent, selector) evaluates selector(parent) eagerly and keeps a
synchronous deep watch on it, so the child follows the parent.

How far the binding goes back up depends on what was selected:

- Object selection (dict, list, set): the child holds the very tracked
  container the parent holds. Mutating child.current mutates the parent's
  data in place. The watch only has work to do when the parent replaces the
  selected container wholesale.
- Primitive selection over a primitive parent: the lens is the parent cell
  itself, so both directions hold trivially.
- Primitive selection out of a larger structure (one field of a record): the
  child is a copy. Parent writes reach the child; child writes stay local.
  A copied primitive has nothing shared to write through.
"""

from __future__ import annotations

import logging
from typing import Callable, Generic, TypeVar

from reactref.cell import Cell
from reactref.untracked import no_tracking
from reactref.utils import is_primitive
from reactref.watch import Watcher, watch

logger = logging.getLogger("reactref.lens")

T = TypeVar("T")
K = TypeVar("K")

Selector = Callable[[Cell[T]], K]


class LensBinding(Generic[T, K]):
    """A parent cell, a selector and the child cell it feeds."""

    def __init__(self, parent: Cell[T], selector: Selector) -> None:
        self.parent = parent
        self.selector = selector
        with no_tracking():
            selected = selector(parent)
            parent_value = parent.peek()
        self.is_primitive_selection = is_primitive(selected)
        self.aliased = self.is_primitive_selection and is_primitive(parent_value)
        self._watcher: Watcher | None = None
        if self.aliased:
            self.cell: Cell[K] = parent
            return
        self.cell = Cell(selected, runtime=parent.runtime)
        self._watcher = watch(self._select, self._sync, deep=True, runtime=parent.runtime)
        logger.debug(
            "Bound lens %r -> %r (primitive=%s)", parent, self.cell, self.is_primitive_selection
        )

    @property
    def active(self) -> bool:
        return self._watcher is not None and not self._watcher.disposed

    def _select(self) -> K:
        with self.parent.runtime.recorder.deriving(self.cell._id):
            return self.selector(self.parent)

    def _sync(self, new: K, old: K | None) -> None:
        self.cell.current = new

    def dispose(self) -> None:
        """Stop parent -> child updates. The child keeps its last value."""
        if self._watcher is not None:
            self._watcher.dispose()

    def __call__(self) -> None:
        self.dispose()

    def __repr__(self) -> str:
        kind = "aliased" if self.aliased else ("primitive" if self.is_primitive_selection else "object")
        return f"LensBinding({kind}, {self.cell!r})"


def bind_lens(parent: Cell[T], selector: Selector) -> LensBinding[T, K]:
    """Derive a child cell and return the binding that keeps it in sync.

    Exceptions raised by selector propagate to the caller.
    """
    return LensBinding(parent, selector)


def derive_lens(parent: Cell[T], selector: Selector) -> Cell[K]:
    """Derive a child cell from parent through selector.

    Usage:
        profile = create_cell({"user": {"name": "John", "age": 30}})
        user = derive_lens(profile, lambda c: c.current["user"])

        user.current["name"] = "Jane"
        # profile.current["user"]["name"] == "Jane": same container

        profile.current["user"] = {"name": "Ann", "age": 41}
        # user.current["name"] == "Ann": the watch picked up the new container
    """
    return bind_lens(parent, selector).cell
