"""
Unit tests for clocks and countdowns.
"""

import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest

from core.timers import Countdown, ManualClock


class Recorder:
    """Counts expiry callbacks."""

    def __init__(self):
        self.calls = 0

    def __call__(self):
        self.calls += 1


def test_manual_clock_advances():
    clock = ManualClock(100)
    clock.advance(2.5)
    assert clock.now() == 102.5
    with pytest.raises(ValueError):
        clock.advance(-1)
    print("✓ test_manual_clock_advances passed")


def test_countdown_needs_positive_budget():
    with pytest.raises(ValueError):
        Countdown(0)
    print("✓ test_countdown_needs_positive_budget passed")


def test_countdown_only_ticks_when_started():
    """Test that a countdown ignores ticks until started."""
    timer = Countdown(3)
    assert timer.tick() is False
    assert timer.remaining == 3
    timer.start()
    timer.tick()
    assert timer.remaining == 2
    print("✓ test_countdown_only_ticks_when_started passed")


def test_countdown_fires_once():
    """Test that expiry fires exactly once, on the tick reaching zero."""
    recorder = Recorder()
    timer = Countdown(2, recorder)
    timer.start()

    assert timer.tick() is False
    assert timer.tick() is True
    assert recorder.calls == 1
    assert timer.expired and not timer.running

    for _ in range(5):
        assert timer.tick() is False
    assert recorder.calls == 1
    assert timer.remaining == 0
    print("✓ test_countdown_fires_once passed")


def test_countdown_pause_resume_keeps_remaining():
    """Test that pausing freezes the remaining time."""
    timer = Countdown(10)
    timer.start()
    for _ in range(4):
        timer.tick()
    timer.pause()
    for _ in range(20):
        timer.tick()
    assert timer.remaining == 6

    timer.resume()
    timer.tick()
    assert timer.remaining == 5
    print("✓ test_countdown_pause_resume_keeps_remaining passed")


def test_countdown_cancel_prevents_expiry():
    """Test that a cancelled countdown never fires."""
    recorder = Recorder()
    timer = Countdown(1, recorder)
    timer.start()
    timer.cancel()
    timer.resume()
    timer.tick()
    assert recorder.calls == 0
    print("✓ test_countdown_cancel_prevents_expiry passed")


def test_countdown_reset_rearms():
    """Test that reset refills the budget and allows another expiry."""
    recorder = Recorder()
    timer = Countdown(1, recorder)
    timer.start()
    timer.tick()
    assert recorder.calls == 1

    timer.reset()
    assert timer.remaining == 1 and not timer.expired
    timer.start()
    timer.tick()
    assert recorder.calls == 2
    print("✓ test_countdown_reset_rearms passed")


def run_all_tests():
    """Run all tests."""
    print("\n" + "=" * 60)
    print("Running timer tests")
    print("=" * 60 + "\n")

    test_manual_clock_advances()
    test_countdown_needs_positive_budget()
    test_countdown_only_ticks_when_started()
    test_countdown_fires_once()
    test_countdown_pause_resume_keeps_remaining()
    test_countdown_cancel_prevents_expiry()
    test_countdown_reset_rearms()

    print("\n" + "=" * 60)
    print("All timer tests passed!")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    run_all_tests()
