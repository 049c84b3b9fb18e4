"""Textual integration for reactref. Opt-in — requires textual.

Maps the host-component contract onto Textual widgets:

- mount_scope(widget) from on_mount, unmount_scope(widget) from on_unmount.
- TextualQueue(app) runs deferred flushes on Textual timers.
- reaction() and bind() push tracked state into widgets, skipping while the
  widget tree is paused or the app is not running, and ignoring NoMatches
  from widget queries.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable

from textual.css.query import NoMatches

from reactref.errors import ScopeError
from reactref.runtime import Runtime, get_runtime
from reactref.scope import Scope

logger = logging.getLogger("reactref.textual")

# Module-owned state, keyed by id() so multiple apps and widgets work in tests.
# _paused_apps maps id(app) to the number of open pause() blocks; an id is in
# _scopes only between mount_scope() and unmount_scope().
_paused_apps: dict[int, int] = {}
_scopes: dict[int, Scope] = {}


class TextualQueue:
    """Flush queue backed by a Textual node's timers."""

    def __init__(self, node) -> None:
        self._node = node

    def schedule(self, callback: Callable[[], None]):
        return self._node.set_timer(0, callback)

    def cancel(self, token) -> None:
        token.stop()

    def __repr__(self) -> str:
        return f"TextualQueue({type(self._node).__name__})"


@contextmanager
def pause(app):
    """Hold back widget updates from reaction() and bind() for app.

    Use it around code that removes and remounts widgets. The watches and
    projections behind those callbacks keep tracking, and the scopes that own
    them stay active. An update skipped while paused is not replayed; the
    next change after the outermost block goes through. Blocks may nest.
    """
    key = id(app)
    _paused_apps[key] = _paused_apps.get(key, 0) + 1
    try:
        yield
    finally:
        depth = _paused_apps.pop(key) - 1
        if depth:
            _paused_apps[key] = depth


def is_safe(app) -> bool:
    """True when guarded callbacks may touch app's widgets: the app is running
    and no pause(app) block is open.
    """
    return app.is_running and id(app) not in _paused_apps


def mount_scope(widget, runtime: Runtime | None = None) -> Scope:
    """Activate the scope of a widget that was just mounted."""
    key = id(widget)
    if key in _scopes:
        raise ScopeError(f"{widget!r} already has an active scope")
    scope = (runtime or get_runtime()).scope().activate()
    _scopes[key] = scope
    return scope


def unmount_scope(widget) -> None:
    """Deactivate the scope of a widget that is being removed."""
    scope = _scopes.pop(id(widget), None)
    if scope is None:
        raise ScopeError(f"{widget!r} has no active scope")
    scope.deactivate()


def scope_of(widget) -> Scope | None:
    return _scopes.get(id(widget))


def _guard(app, fn: Callable) -> Callable:
    def _guarded(*args) -> None:
        if not is_safe(app):
            logger.debug("Skipped widget update: app not safe")
            return
        try:
            fn(*args)
        except NoMatches:
            pass

    return _guarded


def reaction(app, data_fn, apply_fn, *, scope: Scope | None = None, runtime: Runtime | None = None):
    """Deferred watch of data_fn that safely calls apply_fn(value) on widgets.

    data_fn is always tracked, so the reaction keeps its dependencies while
    updates are being skipped.
    """
    guarded = _guard(app, apply_fn)

    def callback(new, old) -> None:
        guarded(new)

    if scope is not None:
        return scope.watch(data_fn, callback, flush="deferred")
    return (runtime or get_runtime()).watch(data_fn, callback, flush="deferred")


def bind(app, projection, apply_fn) -> Callable[[], None]:
    """Push every new snapshot of projection into widgets via apply_fn.

    Returns the unsubscribe function.
    """
    return projection.subscribe(_guard(app, apply_fn))
