"""Tests for the virtual-time scheduler, the Tk adapter and the countdown."""

from __future__ import annotations

from unittest.mock import MagicMock

from sensorwatch.scheduling import Countdown, ManualScheduler, TkScheduler


def test_manual_scheduler_runs_due_calls_in_order():
    scheduler = ManualScheduler()
    calls: list[str] = []
    scheduler.call_later(2.0, lambda: calls.append("second"))
    scheduler.call_later(1.0, lambda: calls.append("first"))
    scheduler.call_later(5.0, lambda: calls.append("later"))

    scheduler.advance(2.0)

    assert calls == ["first", "second"]
    assert scheduler.now == 2.0
    assert scheduler.pending == 1


def test_manual_scheduler_skips_cancelled_calls():
    scheduler = ManualScheduler()
    calls: list[str] = []
    handle = scheduler.call_later(1.0, lambda: calls.append("cancelled"))
    scheduler.cancel(handle)

    scheduler.advance(10)

    assert calls == []
    assert scheduler.pending == 0


def test_manual_scheduler_runs_calls_scheduled_by_calls():
    scheduler = ManualScheduler()
    calls: list[float] = []

    def first() -> None:
        calls.append(scheduler.now)
        scheduler.call_later(1.0, lambda: calls.append(scheduler.now))

    scheduler.call_later(1.0, first)
    scheduler.advance(3)

    assert calls == [1.0, 2.0]


def test_tk_scheduler_converts_seconds_to_milliseconds():
    widget = MagicMock()
    widget.after.return_value = "after#1"
    callback = MagicMock()

    handle = TkScheduler(widget).call_later(1.5, callback)

    widget.after.assert_called_once_with(1500, callback)
    assert handle == "after#1"


def test_tk_scheduler_ignores_stale_handles():
    widget = MagicMock()
    widget.after_cancel.side_effect = ValueError("no such event")

    TkScheduler(widget).cancel("after#1")

    widget.after_cancel.assert_called_once_with("after#1")


def test_countdown_drops_one_per_second():
    scheduler = ManualScheduler()
    countdown = Countdown(scheduler)

    countdown.start(60)
    scheduler.advance(15)

    assert countdown.remaining == 45
    assert countdown.is_running


def test_countdown_ticks_strictly_decrease_and_stop_at_zero():
    scheduler = ManualScheduler()
    countdown = Countdown(scheduler)
    ticks: list[int] = []
    elapsed = MagicMock()

    countdown.start(3, on_tick=ticks.append, on_elapsed=elapsed)
    scheduler.advance(10)

    assert ticks == [2, 1, 0]
    assert countdown.remaining == 0
    assert not countdown.is_running
    elapsed.assert_called_once_with()
    assert scheduler.pending == 0


def test_restarting_replaces_the_running_countdown():
    scheduler = ManualScheduler()
    countdown = Countdown(scheduler)
    ticks: list[int] = []

    countdown.start(60, on_tick=ticks.append)
    scheduler.advance(10)
    countdown.start(5, on_tick=ticks.append)
    scheduler.advance(5)

    assert countdown.remaining == 0
    assert ticks[-5:] == [4, 3, 2, 1, 0]
    assert scheduler.pending == 0


def test_cancel_zeroes_without_firing_elapsed():
    scheduler = ManualScheduler()
    countdown = Countdown(scheduler)
    elapsed = MagicMock()

    countdown.start(60, on_elapsed=elapsed)
    scheduler.advance(3)
    countdown.cancel()
    scheduler.advance(120)

    assert countdown.remaining == 0
    elapsed.assert_not_called()


def test_zero_length_countdown_elapses_immediately():
    scheduler = ManualScheduler()
    countdown = Countdown(scheduler)
    elapsed = MagicMock()

    countdown.start(0, on_elapsed=elapsed)

    elapsed.assert_called_once_with()
    assert not countdown.is_running
