"""Tests for the background sweeper lifecycle."""

import threading
from unittest.mock import Mock

import pytest

from ratewarden.adapters.rate_limit.sweeper import QuotaSweeper, default_sweep_interval


def test_sweeps_periodically_until_stopped() -> None:
    swept = threading.Event()
    store = Mock()
    store.sweep.side_effect = lambda: swept.set() or 0

    sweeper = QuotaSweeper(store, interval_seconds=0.01)
    sweeper.start()
    try:
        assert swept.wait(timeout=2.0)
        assert sweeper.running is True
    finally:
        sweeper.stop()

    assert sweeper.running is False
    calls = store.sweep.call_count
    threading.Event().wait(0.05)
    assert store.sweep.call_count == calls


def test_survives_a_failing_sweep() -> None:
    second_call = threading.Event()
    calls = []

    def flaky() -> int:
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")
        second_call.set()
        return 0

    store = Mock()
    store.sweep.side_effect = flaky

    sweeper = QuotaSweeper(store, interval_seconds=0.01)
    sweeper.start()
    try:
        assert second_call.wait(timeout=2.0)
    finally:
        sweeper.stop()


def test_start_is_idempotent_and_stop_without_start_is_safe() -> None:
    sweeper = QuotaSweeper(Mock(), interval_seconds=60)
    sweeper.stop()

    sweeper.start()
    thread = sweeper._thread
    sweeper.start()
    assert sweeper._thread is thread
    sweeper.stop()


def test_invalid_interval() -> None:
    with pytest.raises(ValueError):
        QuotaSweeper(Mock(), interval_seconds=0)


@pytest.mark.parametrize(("window", "expected"), [(900, 300), (90, 30), (2, 1)])
def test_default_sweep_interval(window: float, expected: float) -> None:
    assert default_sweep_interval(window) == expected
