"""
Tests for WindowReferenceCounter
"""

from unittest.mock import Mock

from ui.window_registry import WindowReferenceCounter


class TestWindowReferenceCounter:
    def test_starts_at_zero(self):
        assert WindowReferenceCounter().count == 0

    def test_shown_increments(self):
        counter = WindowReferenceCounter()

        assert counter.window_shown() == 1
        assert counter.window_shown() == 2
        assert counter.count == 2

    def test_two_to_one_does_not_fire(self):
        on_last_closed = Mock()
        counter = WindowReferenceCounter(on_last_closed)
        counter.window_shown()
        counter.window_shown()

        assert counter.window_destroyed() == 1

        on_last_closed.assert_not_called()

    def test_one_to_zero_fires_once(self):
        on_last_closed = Mock()
        counter = WindowReferenceCounter(on_last_closed)
        counter.window_shown()
        counter.window_shown()

        counter.window_destroyed()
        counter.window_destroyed()

        on_last_closed.assert_called_once_with()

    def test_destroy_at_zero_is_ignored(self):
        on_last_closed = Mock()
        counter = WindowReferenceCounter(on_last_closed)

        assert counter.window_destroyed() == 0
        assert counter.count == 0
        on_last_closed.assert_not_called()

    def test_reopen_after_last_close_fires_again(self):
        on_last_closed = Mock()
        counter = WindowReferenceCounter(on_last_closed)

        counter.window_shown()
        counter.window_destroyed()
        counter.window_shown()
        counter.window_destroyed()

        assert on_last_closed.call_count == 2

    def test_no_callback(self):
        counter = WindowReferenceCounter()
        counter.window_shown()

        assert counter.window_destroyed() == 0
