"""Exceptions raised by reactref.

Only programmer-contract violations get their own type. Exceptions from user
code (effects, selectors, watch callbacks) propagate unchanged.
"""


class ReactrefError(Exception):
    """Base class for reactref errors."""


class CycleError(ReactrefError):
    """A lens selector read the lens it is deriving."""


class ScopeError(ReactrefError):
    """A scope was activated, used or deactivated out of order."""


class FlushLimitError(ReactrefError):
    """Draining a ManualQueue kept scheduling new work past its round limit."""
