from datetime import timedelta

from conftest import START
from tracker.activity_monitor import HEARTBEAT_INTERVAL, ActivityMonitor
from tracker.classifier import ActivityState
from tracker.signals import ActivitySignal, SignalKind, SignalQueue


def make_monitor(config):
    monitor = ActivityMonitor(config, START)
    received = []
    monitor.on_activity(received.append)
    return monitor, received


class TestRecord:
    def test_activity_refreshes_last_activity(self, config):
        monitor, received = make_monitor(config)
        later = START + timedelta(seconds=7)
        monitor.record(ActivitySignal(SignalKind.TEXT_CHANGE, later))
        assert monitor.last_activity == later
        assert [s.kind for s in received] == [SignalKind.TEXT_CHANGE]

    def test_older_signal_keeps_latest_activity(self, config):
        monitor, _ = make_monitor(config)
        monitor.record(ActivitySignal(SignalKind.TEXT_CHANGE, START + timedelta(seconds=7)))
        monitor.record(ActivitySignal(SignalKind.CURSOR_CHANGE, START + timedelta(seconds=3)))
        assert monitor.last_activity == START + timedelta(seconds=7)

    def test_focus_changes_window_state(self, config):
        monitor, _ = make_monitor(config)
        monitor.record(ActivitySignal(SignalKind.FOCUS_LOST, START))
        assert monitor.window_focused is False
        assert monitor.state(START) == ActivityState.ACTIVE_BACKGROUND
        monitor.record(ActivitySignal(SignalKind.FOCUS_GAINED, START))
        assert monitor.window_focused is True

    def test_failing_callback_does_not_block_others(self, config):
        monitor = ActivityMonitor(config, START)
        received = []

        def broken(signal):
            raise RuntimeError("boom")

        monitor.on_activity(broken)
        monitor.on_activity(received.append)
        monitor.record(ActivitySignal(SignalKind.TEXT_CHANGE, START))

        assert len(received) == 1

    def test_dispose_drops_callbacks(self, config):
        monitor, received = make_monitor(config)
        monitor.dispose()
        monitor.record(ActivitySignal(SignalKind.TEXT_CHANGE, START))
        assert received == []


class TestHeartbeat:
    def test_refreshes_after_interval(self, config):
        monitor, _ = make_monitor(config)
        assert monitor.check_heartbeat(START + timedelta(seconds=5)) is False
        assert monitor.last_heartbeat == START
        now = START + HEARTBEAT_INTERVAL
        assert monitor.check_heartbeat(now) is False
        assert monitor.last_heartbeat == now

    def test_long_gap_without_activity_is_sleep(self, config):
        monitor, received = make_monitor(config)
        now = START + timedelta(minutes=2)

        assert monitor.check_heartbeat(now) is True

        sleep, wake = received
        assert sleep.kind == SignalKind.SLEEP
        assert sleep.timestamp == START + HEARTBEAT_INTERVAL
        assert wake.kind == SignalKind.WAKE
        assert wake.timestamp == now
        assert monitor.last_heartbeat == now

    def test_long_gap_with_activity_is_only_a_wake(self, config):
        monitor, received = make_monitor(config)
        now = START + timedelta(minutes=2)
        monitor.record(ActivitySignal(SignalKind.TEXT_CHANGE, START + timedelta(seconds=5)))
        received.clear()

        assert monitor.check_heartbeat(now) is False

        assert [(s.kind, s.timestamp) for s in received] == [(SignalKind.WAKE, now)]
        assert monitor.last_heartbeat == now

    def test_short_gap_dispatches_nothing(self, config):
        monitor, received = make_monitor(config)
        monitor.record(ActivitySignal(SignalKind.TEXT_CHANGE, START + timedelta(seconds=5)))
        received.clear()

        monitor.check_heartbeat(START + timedelta(seconds=20))

        assert received == []


def test_signal_queue_keeps_order():
    queue = SignalQueue()
    kinds = [SignalKind.FOCUS_GAINED, SignalKind.TEXT_CHANGE, SignalKind.CURSOR_CHANGE]
    for kind in kinds:
        queue.post(ActivitySignal(kind, START))
    assert [s.kind for s in queue.drain()] == kinds
    assert queue.drain() == []
