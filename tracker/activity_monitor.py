# tracker/activity_monitor.py

from __future__ import annotations

from datetime import datetime, timedelta
import logging
from typing import Callable

from tracker.classifier import ActivityState, SLEEP_GAP_THRESHOLD_MS, classify, is_active_state
from tracker.signals import ACTIVITY_KINDS, FOCUS_KINDS, ActivitySignal, SignalKind

logger = logging.getLogger(__name__)

HEARTBEAT_INTERVAL = timedelta(seconds=10)

ActivityCallback = Callable[[ActivitySignal], None]


class ActivityMonitor:
    """
    Keeps the raw activity picture for the classifier:
    - when the editor was last touched
    - whether the editor window has focus
    - when the last heartbeat ran (to spot process suspension)

    Every recorded signal is fanned out to the registered callbacks.
    """

    def __init__(self, config, now: datetime, window_focused: bool = True):
        self.config = config
        self.last_activity = now
        self.last_heartbeat = now
        self.window_focused = window_focused
        self._callbacks: list[ActivityCallback] = []

        logger.info(
            "Activity monitor initialized (focused=%s, idle threshold=%s min)",
            window_focused,
            config.idle_threshold,
        )

    # ---------- state queries ----------

    def state(self, now: datetime) -> ActivityState:
        return classify(
            now=now,
            last_activity=self.last_activity,
            last_heartbeat=self.last_heartbeat,
            window_focused=self.window_focused,
            idle_threshold_minutes=self.config.idle_threshold,
            track_background=self.config.track_background,
            sleep_gap_threshold_ms=SLEEP_GAP_THRESHOLD_MS,
        )

    def is_active(self, now: datetime) -> bool:
        return is_active_state(self.state(now))

    # ---------- callbacks ----------

    def on_activity(self, callback: ActivityCallback) -> None:
        self._callbacks.append(callback)

    def record(self, signal: ActivitySignal) -> None:
        if signal.kind in ACTIVITY_KINDS or signal.kind in FOCUS_KINDS:
            if signal.timestamp > self.last_activity:
                self.last_activity = signal.timestamp

        if signal.kind == SignalKind.FOCUS_GAINED:
            self.window_focused = True
        elif signal.kind == SignalKind.FOCUS_LOST:
            self.window_focused = False

        self._dispatch(signal)

    def _dispatch(self, signal: ActivitySignal) -> None:
        # one failing callback must not starve the others
        for callback in list(self._callbacks):
            try:
                callback(signal)
            except Exception:
                logger.exception("Error in activity callback for %s", signal.kind.value)

    # ---------- heartbeat ----------

    def check_heartbeat(self, now: datetime) -> bool:
        """
        Returns True when a sleep/wake pair was dispatched.

        A gap above the sleep threshold with no activity in between means the
        whole process was frozen. The sleep is stamped one heartbeat after the
        last good beat; the wake is stamped now.

        If activity arrived inside the gap there is no sleep, but the frozen
        stretch is still not work: a lone wake re-anchors the open session.
        """
        gap = now - self.last_heartbeat
        gap_ms = gap.total_seconds() * 1000

        if gap_ms > SLEEP_GAP_THRESHOLD_MS and self.last_activity > self.last_heartbeat:
            logger.info(
                "Heartbeat gap of %.0fs with activity inside it, skipping the gap",
                gap.total_seconds(),
            )
            self._dispatch(ActivitySignal(SignalKind.WAKE, now, {"gap_ms": gap_ms}))
            self.last_heartbeat = now
            return False

        if gap_ms > SLEEP_GAP_THRESHOLD_MS:
            sleep_at = self.last_heartbeat + HEARTBEAT_INTERVAL
            logger.info(
                "Heartbeat gap of %.0fs detected, assuming sleep at %s",
                gap.total_seconds(),
                sleep_at.isoformat(),
            )
            self._dispatch(ActivitySignal(SignalKind.SLEEP, sleep_at, {"gap_ms": gap_ms}))
            self._dispatch(ActivitySignal(SignalKind.WAKE, now, {"gap_ms": gap_ms}))
            self.last_heartbeat = now
            return True

        if gap >= HEARTBEAT_INTERVAL or gap_ms > SLEEP_GAP_THRESHOLD_MS:
            self.last_heartbeat = now
        return False

    # ---------- lifecycle ----------

    def reset_activity(self, now: datetime) -> None:
        self.last_activity = now
        self.last_heartbeat = now

    def update_config(self, config) -> None:
        old_threshold = self.config.idle_threshold
        self.config = config
        if old_threshold != config.idle_threshold:
            logger.info(
                "Activity monitor config updated (idle threshold %s -> %s min)",
                old_threshold,
                config.idle_threshold,
            )

    def dispose(self) -> None:
        self._callbacks.clear()
        logger.info("Activity monitor disposed")
