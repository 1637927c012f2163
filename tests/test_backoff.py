"""Tests for the latency-driven backoff controller."""

import pytest
from crawlpace.models.config import ProcessorOptions
from crawlpace.processing.backoff import BackoffChange, BackoffController


def make_controller(threshold=0.05, step=0.2, streak=3):
    return BackoffController(
        ProcessorOptions(
            timeout_before_throttle=threshold,
            throttling_request_backoff=step,
            min_sequential_successes_to_minimise_throttling=streak,
        )
    )


class TestBackoffController:
    """Tests for BackoffController."""

    def test_starts_at_zero(self):
        controller = make_controller()
        assert controller.backoff_ms == 0
        assert controller.backoff == 0.0
        assert controller.fast_streak == 0

    def test_slow_response_increases_by_one_step(self):
        """A single slow response raises the backoff immediately."""
        controller = make_controller()
        assert controller.record(0.08) == BackoffChange.INCREASED
        assert controller.backoff_ms == 200
        assert controller.backoff == pytest.approx(0.2)

    def test_increase_has_no_ceiling(self):
        """Sustained slow responses keep growing the backoff."""
        controller = make_controller()
        for _ in range(50):
            controller.record(1.0)
        assert controller.backoff_ms == 50 * 200

    def test_fast_response_without_backoff_changes_nothing(self):
        """With no backoff in effect, fast responses do not build a streak."""
        controller = make_controller()
        assert controller.record(0.01) == BackoffChange.UNCHANGED
        assert controller.backoff_ms == 0
        assert controller.fast_streak == 0

    def test_recovery_requires_full_streak(self):
        """The backoff drops only after the configured number of fast responses."""
        controller = make_controller(streak=3)
        controller.record(0.5)
        controller.record(0.5)
        assert controller.backoff_ms == 400

        assert controller.record(0.01) == BackoffChange.UNCHANGED
        assert controller.record(0.01) == BackoffChange.UNCHANGED
        assert controller.backoff_ms == 400

        assert controller.record(0.01) == BackoffChange.DECREASED
        assert controller.backoff_ms == 200
        assert controller.fast_streak == 0

    def test_slow_response_resets_streak(self):
        """A slow response in the middle of a streak starts it over."""
        controller = make_controller(streak=2)
        controller.record(0.5)
        controller.record(0.01)
        assert controller.fast_streak == 1

        controller.record(0.5)
        assert controller.fast_streak == 0
        assert controller.backoff_ms == 400

    def test_recovers_to_exactly_zero(self):
        """Decrements never leave the backoff negative or slightly above zero."""
        controller = make_controller(step=0.1, streak=1)
        for _ in range(3):
            controller.record(0.5)
        for _ in range(10):
            controller.record(0.01)
        assert controller.backoff_ms == 0
        assert controller.backoff == 0.0

    def test_zero_threshold_disables_throttling(self):
        """timeout_before_throttle=0 never counts a response as slow."""
        controller = make_controller(threshold=0)
        assert controller.is_slow(100.0) is False
        assert controller.record(100.0) == BackoffChange.UNCHANGED
        assert controller.backoff_ms == 0

    def test_threshold_is_exclusive(self):
        """A response exactly at the threshold is not slow."""
        controller = make_controller(threshold=0.05)
        assert controller.is_slow(0.05) is False
        assert controller.is_slow(0.0501) is True
