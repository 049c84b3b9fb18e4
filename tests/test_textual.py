"""Tests for reactref.textual — Textual integration layer."""

import pytest
from textual.css.query import NoMatches

from reactref import ManualQueue, Runtime, ScopeError, create_cell, project
from reactref import textual as rtx


class _MockTimer:
    def __init__(self, callback):
        self.callback = callback
        self.stopped = False

    def stop(self):
        self.stopped = True


class _MockApp:
    """Minimal mock matching the Textual App interface rtx needs."""

    def __init__(self, *, is_running=True):
        self.is_running = is_running
        self.timers = []

    def set_timer(self, delay, callback):
        timer = _MockTimer(callback)
        self.timers.append(timer)
        return timer

    def tick(self):
        """Fire every timer that has not been stopped."""
        timers, self.timers = self.timers, []
        for timer in timers:
            if not timer.stopped:
                timer.callback()


class _MockWidget:
    pass


@pytest.fixture(autouse=True)
def _clean_scopes():
    yield
    rtx._scopes.clear()
    rtx._paused_apps.clear()


class TestTextualQueue:
    def test_flush_runs_on_timer(self):
        app = _MockApp()
        runtime = Runtime(queue=rtx.TextualQueue(app))
        ref = runtime.cell(0)
        log = []
        runtime.effect(lambda: log.append(ref.current))
        ref.current = 1
        ref.current = 2
        assert len(app.timers) == 1
        assert log == [0]
        app.tick()
        assert log == [0, 2]

    def test_dispose_stops_timer(self):
        app = _MockApp()
        runtime = Runtime(queue=rtx.TextualQueue(app))
        ref = runtime.cell(0)
        effect = runtime.effect(lambda: ref.current)
        ref.current = 1
        timer = app.timers[0]
        effect.dispose()
        assert timer.stopped

    def test_repr(self):
        assert repr(rtx.TextualQueue(_MockApp())) == "TextualQueue(_MockApp)"


class TestReaction:
    def test_fires_after_flush_when_safe(self, queue):
        app = _MockApp()
        ref = create_cell(1)
        effects = []
        rtx.reaction(app, lambda: ref.current, effects.append)
        ref.current = 2
        assert effects == []
        queue.flush()
        assert effects == [2]

    def test_skips_when_not_running(self, queue):
        app = _MockApp(is_running=False)
        ref = create_cell(1)
        effects = []
        rtx.reaction(app, lambda: ref.current, effects.append)
        ref.current = 2
        queue.flush()
        assert effects == []

    def test_skips_during_pause(self, queue):
        app = _MockApp()
        ref = create_cell(1)
        effects = []
        rtx.reaction(app, lambda: ref.current, effects.append)
        with rtx.pause(app):
            ref.current = 2
            queue.flush()
        assert effects == []

    def test_keeps_dependencies_through_pause(self, queue):
        app = _MockApp()
        ref = create_cell(1)
        effects = []
        rtx.reaction(app, lambda: ref.current, effects.append)
        with rtx.pause(app):
            ref.current = 2
            queue.flush()
        ref.current = 3
        queue.flush()
        assert effects == [3]

    def test_catches_nomatch(self, queue):
        """NoMatches from widget queries are silently swallowed."""
        app = _MockApp()
        ref = create_cell(1)

        def _raise_nomatch(v):
            raise NoMatches("StatusFooter")

        watcher = rtx.reaction(app, lambda: ref.current, _raise_nomatch)
        ref.current = 2
        queue.flush()
        watcher.dispose()

    def test_propagates_real_errors(self, queue):
        """Non-NoMatches exceptions propagate normally."""
        app = _MockApp()
        ref = create_cell(1)

        def _raise_value_error(v):
            raise ValueError("boom")

        rtx.reaction(app, lambda: ref.current, _raise_value_error)
        ref.current = 2
        with pytest.raises(ValueError, match="boom"):
            queue.flush()

    def test_dispose_stops_reaction(self, queue):
        app = _MockApp()
        ref = create_cell(1)
        effects = []
        watcher = rtx.reaction(app, lambda: ref.current, effects.append)
        ref.current = 2
        watcher.dispose()
        queue.flush()
        assert effects == []

    def test_scope_owns_reaction(self, rt, queue):
        app = _MockApp()
        ref = create_cell(1)
        effects = []
        with rt.scope() as scope:
            rtx.reaction(app, lambda: ref.current, effects.append, scope=scope)
            ref.current = 2
        queue.flush()
        assert effects == []


class TestPause:
    def test_is_safe(self):
        app = _MockApp()
        assert rtx.is_safe(app)
        with rtx.pause(app):
            assert not rtx.is_safe(app)
        assert rtx.is_safe(app)

    def test_restored_on_exception(self):
        app = _MockApp()
        with pytest.raises(RuntimeError):
            with rtx.pause(app):
                raise RuntimeError("boom")
        assert rtx.is_safe(app)

    def test_nested_pauses(self):
        app = _MockApp()
        with rtx.pause(app):
            with rtx.pause(app):
                assert not rtx.is_safe(app)
            assert not rtx.is_safe(app)
        assert rtx.is_safe(app)

    def test_apps_are_independent(self):
        a = _MockApp()
        b = _MockApp()
        with rtx.pause(a):
            assert not rtx.is_safe(a)
            assert rtx.is_safe(b)


class TestBind:
    def test_pushes_snapshots(self, queue):
        app = _MockApp()
        tags = create_cell({1, 2})
        seen = []
        rtx.bind(app, project(tags), seen.append)
        tags.current.add(3)
        queue.flush()
        assert seen == [{1, 2, 3}]

    def test_unsubscribe(self, queue):
        app = _MockApp()
        ref = create_cell(0)
        seen = []
        unsubscribe = rtx.bind(app, project(ref), seen.append)
        unsubscribe()
        ref.current = 1
        queue.flush()
        assert seen == []

    def test_skips_when_paused(self, queue):
        app = _MockApp()
        ref = create_cell(0)
        snap = project(ref)
        seen = []
        rtx.bind(app, snap, seen.append)
        with rtx.pause(app):
            ref.current = 1
            queue.flush()
        assert seen == []
        assert snap.value == 1


class TestWidgetScopes:
    def test_mount_and_unmount(self, rt, queue):
        widget = _MockWidget()
        scope = rtx.mount_scope(widget)
        assert scope.active
        assert scope.runtime is rt
        assert rtx.scope_of(widget) is scope

        ref = scope.cell(0)
        log = []
        scope.effect(lambda: log.append(ref.current))
        ref.current = 1
        rtx.unmount_scope(widget)
        queue.flush()
        assert log == [0]
        assert scope.state == "disposed"
        assert rtx.scope_of(widget) is None

    def test_double_mount_raises(self):
        widget = _MockWidget()
        rtx.mount_scope(widget)
        with pytest.raises(ScopeError):
            rtx.mount_scope(widget)

    def test_unmount_without_mount_raises(self):
        with pytest.raises(ScopeError):
            rtx.unmount_scope(_MockWidget())

    def test_explicit_runtime(self):
        other = Runtime(queue=ManualQueue())
        widget = _MockWidget()
        assert rtx.mount_scope(widget, runtime=other).runtime is other

    def test_widgets_are_independent(self):
        a = _MockWidget()
        b = _MockWidget()
        rtx.mount_scope(a)
        rtx.mount_scope(b)
        rtx.unmount_scope(a)
        assert rtx.scope_of(a) is None
        assert rtx.scope_of(b).active
