"""Tests for untracked reads."""

from reactref import create_cell, no_tracking, run_effect, untracked


class TestUntracked:
    def test_decorator_hides_reads(self, queue):
        total = create_cell(0)
        log = []

        @untracked
        def read_total():
            return total.current

        run_effect(lambda: log.append(read_total()))
        total.current = 5
        assert len(queue) == 0
        assert log == [0]

    def test_decorator_preserves_metadata_and_result(self):
        @untracked
        def add(a, b):
            """Add two numbers."""
            return a + b

        assert add(2, 3) == 5
        assert add.__name__ == "add"
        assert add.__doc__ == "Add two numbers."

    def test_context_manager_mixed_reads(self, queue):
        tracked = create_cell(0)
        hidden = create_cell(0)
        log = []

        def body():
            with no_tracking():
                peeked = hidden.current
            log.append((tracked.current, peeked))

        run_effect(body)
        hidden.current = 1
        assert len(queue) == 0
        tracked.current = 1
        queue.flush()
        assert log == [(0, 0), (1, 1)]

    def test_writes_still_notify(self, queue):
        ref = create_cell(0)
        log = []
        run_effect(lambda: log.append(ref.current))
        with no_tracking():
            ref.current = 7
        queue.flush()
        assert log == [0, 7]

    def test_nested_container_reads(self, queue):
        ref = create_cell({"items": [1, 2]})
        log = []

        @untracked
        def count():
            return len(ref.current["items"])

        run_effect(lambda: log.append(count()))
        ref.current["items"].append(3)
        assert len(queue) == 0
