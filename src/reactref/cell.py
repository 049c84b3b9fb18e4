"""Tracked cells — mutable slots that record their readers.

A Cell holds one value behind its `current` property. Reading `current` while
an effect, watcher or projection runs records a dependency; writing it
notifies every derivation that read it.

Composite values are wrapped on the way in: dicts become TrackedDict, lists
TrackedList, sets TrackedSet, recursively for dicts and lists. The wrapper is
created once and stored, so every reader gets the same object back and
in-place mutations are seen by everyone holding a reference to it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Generic, Hashable, Iterable, Iterator, Sequence, TypeVar

from reactref._tracking import ITERATE, new_id
from reactref.untracked import no_tracking
from reactref.utils import has_changed

if TYPE_CHECKING:
    from reactref.runtime import Runtime

T = TypeVar("T")
KT = TypeVar("KT")
VT = TypeVar("VT")

CURRENT = "current"


def wrap(value, runtime: Runtime):
    """Return the tracked form of `value` for `runtime`."""
    if isinstance(value, _Tracked):
        return value
    if isinstance(value, dict):
        return TrackedDict(value, runtime=runtime)
    if isinstance(value, list):
        return TrackedList(value, runtime=runtime)
    if isinstance(value, set):
        return TrackedSet(value, runtime=runtime)
    return value


def traverse(value, seen: set[int] | None = None) -> None:
    """Read everything reachable from `value` so a deep watch depends on it."""
    if seen is None:
        seen = set()
    if isinstance(value, Cell):
        value = value.current
    if not isinstance(value, _Tracked) or id(value) in seen:
        return
    seen.add(id(value))
    if isinstance(value, TrackedDict):
        for item in value.values():
            traverse(item, seen)
    elif isinstance(value, TrackedList):
        for item in value:
            traverse(item, seen)
    else:
        len(value)


class Cell(Generic[T]):
    """A single tracked slot."""

    __slots__ = ("_id", "_runtime", "_value")

    def __init__(self, value: T, *, runtime: Runtime) -> None:
        self._id = new_id()
        self._runtime = runtime
        self._value = wrap(value, runtime)

    @property
    def runtime(self) -> Runtime:
        return self._runtime

    @property
    def current(self) -> T:
        """Read the value. If inside a derivation, registers the dependency."""
        recorder = self._runtime.recorder
        recorder.check_cycle(self._id)
        recorder.track(self._id, CURRENT)
        return self._value

    @current.setter
    def current(self, value: T) -> None:
        new = wrap(value, self._runtime)
        if not has_changed(self._value, new):
            return
        self._value = new
        self._runtime.recorder.trigger(self._id, (CURRENT,))

    def get(self) -> T:
        return self.current

    def set(self, value: T) -> None:
        self.current = value

    def peek(self) -> T:
        """Read without recording a dependency."""
        return self._value

    def get_in(self, path: Sequence[Hashable]):
        """Read the value at `path` below `current`, tracking every step.

        Usage:
            cell = create_cell({"user": {"name": "Ann"}})
            cell.get_in(("user", "name"))  # "Ann"
        """
        node = self.current
        for key in path:
            node = node[key]
        return node

    def set_in(self, path: Sequence[Hashable], value) -> None:
        """Write `value` at `path` below `current`. An empty path replaces it."""
        if not path:
            self.current = value
            return
        with no_tracking():
            node = self._value
            for key in path[:-1]:
                node = node[key]
        node[path[-1]] = value

    def __repr__(self) -> str:
        return f"Cell({self._value!r})"


class _Tracked:
    """Shared plumbing for tracked containers."""

    __slots__ = ("_id", "_runtime")

    def __init__(self, runtime: Runtime) -> None:
        self._id = new_id()
        self._runtime = runtime

    def _track(self, key: Hashable = ITERATE) -> None:
        self._runtime.recorder.track(self._id, key)

    def _notify(self, *keys: Hashable) -> None:
        self._runtime.recorder.trigger(self._id, keys or (ITERATE,))

    __hash__ = None  # type: ignore[assignment]


class TrackedDict(_Tracked, Generic[KT, VT]):
    """A tracked dict, used for both records and maps.

    Reading a key depends on that key only. len(), iteration, keys(),
    values(), items() and equality depend on the whole shape.
    """

    __slots__ = ("_data",)

    def __init__(self, data: dict[KT, VT] | None = None, *, runtime: Runtime) -> None:
        super().__init__(runtime)
        self._data: dict[KT, VT] = {}
        if data:
            for key, value in data.items():
                self._data[key] = wrap(value, runtime)

    # --- Read operations (track) ---

    def __getitem__(self, key: KT) -> VT:
        self._track(key)
        return self._data[key]

    def get(self, key: KT, default: VT | None = None) -> VT | None:
        self._track(key)
        return self._data.get(key, default)

    def __contains__(self, key: object) -> bool:
        self._track(key)
        return key in self._data

    def __len__(self) -> int:
        self._track()
        return len(self._data)

    def __iter__(self) -> Iterator[KT]:
        self._track()
        return iter(self._data)

    def keys(self):
        self._track()
        return self._data.keys()

    def values(self):
        self._track()
        return self._data.values()

    def items(self):
        self._track()
        return self._data.items()

    def __bool__(self) -> bool:
        self._track()
        return bool(self._data)

    def __eq__(self, other: object) -> bool:
        self._track()
        if isinstance(other, TrackedDict):
            return self._data == other._data
        if isinstance(other, dict):
            return self._data == other
        return NotImplemented

    # --- Write operations (notify) ---

    def __setitem__(self, key: KT, value: VT) -> None:
        new = wrap(value, self._runtime)
        if key in self._data and not has_changed(self._data[key], new):
            return
        self._data[key] = new
        self._notify(key, ITERATE)

    def __delitem__(self, key: KT) -> None:
        del self._data[key]
        self._notify(key, ITERATE)

    def pop(self, key: KT, *default) -> VT:
        present = key in self._data
        result = self._data.pop(key, *default)
        if present:
            self._notify(key, ITERATE)
        return result

    def update(self, other=None, **kwargs) -> None:
        if other:
            items = other.items() if hasattr(other, "items") else other
            for key, value in items:
                self[key] = value
        for key, value in kwargs.items():
            self[key] = value

    def setdefault(self, key: KT, default: VT | None = None) -> VT:
        if key not in self._data:
            self[key] = default
        return self[key]

    def clear(self) -> None:
        if not self._data:
            return
        keys = list(self._data)
        self._data.clear()
        self._notify(*keys, ITERATE)

    def __repr__(self) -> str:
        return f"TrackedDict({self._data!r})"


class TrackedList(_Tracked, Generic[T]):
    """A tracked list. Every read depends on the whole list."""

    __slots__ = ("_items",)

    def __init__(self, items: Iterable[T] | None = None, *, runtime: Runtime) -> None:
        super().__init__(runtime)
        self._items: list[T] = [wrap(item, runtime) for item in items or ()]

    # --- Read operations (track) ---

    def __getitem__(self, index):
        self._track()
        return self._items[index]

    def __len__(self) -> int:
        self._track()
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        self._track()
        return iter(self._items)

    def __contains__(self, item: object) -> bool:
        self._track()
        return item in self._items

    def __bool__(self) -> bool:
        self._track()
        return bool(self._items)

    def __eq__(self, other: object) -> bool:
        self._track()
        if isinstance(other, TrackedList):
            return self._items == other._items
        if isinstance(other, list):
            return self._items == other
        return NotImplemented

    def index(self, item: T, *args) -> int:
        self._track()
        return self._items.index(item, *args)

    def count(self, item: T) -> int:
        self._track()
        return self._items.count(item)

    # --- Write operations (notify) ---

    def append(self, item: T) -> None:
        self._items.append(wrap(item, self._runtime))
        self._notify()

    def extend(self, items: Iterable[T]) -> None:
        self._items.extend(wrap(item, self._runtime) for item in items)
        self._notify()

    def insert(self, index: int, item: T) -> None:
        self._items.insert(index, wrap(item, self._runtime))
        self._notify()

    def pop(self, index: int = -1) -> T:
        result = self._items.pop(index)
        self._notify()
        return result

    def remove(self, item: T) -> None:
        self._items.remove(item)
        self._notify()

    def clear(self) -> None:
        self._items.clear()
        self._notify()

    def sort(self, *, key=None, reverse: bool = False) -> None:
        self._items.sort(key=key, reverse=reverse)
        self._notify()

    def reverse(self) -> None:
        self._items.reverse()
        self._notify()

    def __setitem__(self, index, value) -> None:
        if isinstance(index, slice):
            self._items[index] = [wrap(item, self._runtime) for item in value]
        else:
            new = wrap(value, self._runtime)
            if not has_changed(self._items[index], new):
                return
            self._items[index] = new
        self._notify()

    def __delitem__(self, index) -> None:
        del self._items[index]
        self._notify()

    def __repr__(self) -> str:
        return f"TrackedList({self._items!r})"


class TrackedSet(_Tracked, Generic[T]):
    """A tracked set. Members are hashable, so they are stored as-is."""

    __slots__ = ("_members",)

    def __init__(self, members: Iterable[T] | None = None, *, runtime: Runtime) -> None:
        super().__init__(runtime)
        self._members: set[T] = set(members or ())

    # --- Read operations (track) ---

    def __contains__(self, item: object) -> bool:
        self._track()
        return item in self._members

    def __len__(self) -> int:
        self._track()
        return len(self._members)

    def __iter__(self) -> Iterator[T]:
        self._track()
        return iter(self._members)

    def __bool__(self) -> bool:
        self._track()
        return bool(self._members)

    def __eq__(self, other: object) -> bool:
        self._track()
        if isinstance(other, TrackedSet):
            return self._members == other._members
        if isinstance(other, (set, frozenset)):
            return self._members == other
        return NotImplemented

    # --- Write operations (notify) ---

    def add(self, item: T) -> None:
        if item in self._members:
            return
        self._members.add(item)
        self._notify()

    def discard(self, item: T) -> None:
        if item not in self._members:
            return
        self._members.discard(item)
        self._notify()

    def remove(self, item: T) -> None:
        self._members.remove(item)
        self._notify()

    def pop(self) -> T:
        result = self._members.pop()
        self._notify()
        return result

    def update(self, *others: Iterable[T]) -> None:
        before = len(self._members)
        for other in others:
            self._members.update(other)
        if len(self._members) != before:
            self._notify()

    def clear(self) -> None:
        if not self._members:
            return
        self._members.clear()
        self._notify()

    def __repr__(self) -> str:
        return f"TrackedSet({self._members!r})"
