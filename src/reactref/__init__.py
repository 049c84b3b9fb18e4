"""reactref: tracked cells, batched effects, lenses and snapshot projections."""

from importlib.metadata import version as _version

__version__ = _version("reactref")

from reactref.cell import Cell, TrackedDict, TrackedList, TrackedSet
from reactref.effect import Effect, run_effect
from reactref.errors import CycleError, FlushLimitError, ReactrefError, ScopeError
from reactref.lens import LensBinding, bind_lens, derive_lens
from reactref.projection import Projection, project
from reactref.runtime import Runtime, configure, create_cell, get_runtime, set_runtime, use_runtime
from reactref.scheduler import AsyncioQueue, FlushQueue, ManualQueue, ScheduledRun
from reactref.scope import Scope
from reactref.untracked import no_tracking, untracked
from reactref.utils import has_changed, is_primitive, shallow_copy
from reactref.watch import Watcher, watch
# textual NOT auto-imported — opt-in only

__all__ = [
    "Cell",
    "TrackedDict",
    "TrackedList",
    "TrackedSet",
    "Effect",
    "run_effect",
    "Watcher",
    "watch",
    "LensBinding",
    "bind_lens",
    "derive_lens",
    "Projection",
    "project",
    "Runtime",
    "configure",
    "create_cell",
    "get_runtime",
    "set_runtime",
    "use_runtime",
    "Scope",
    "FlushQueue",
    "ManualQueue",
    "AsyncioQueue",
    "ScheduledRun",
    "untracked",
    "no_tracking",
    "is_primitive",
    "shallow_copy",
    "has_changed",
    "ReactrefError",
    "CycleError",
    "ScopeError",
    "FlushLimitError",
]
