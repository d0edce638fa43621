# tracker/time_tracker.py

from __future__ import annotations

from datetime import datetime, timedelta
import logging
from pathlib import Path
from typing import Callable, List, Optional

from storage.json_store import JsonTrackingStore
from storage.reports import (
    DayLog,
    Report,
    SessionEntry,
    TimeStats,
    build_export,
    build_report,
    detailed_log,
    project_time_today,
    today_project_times,
    todays_sessions,
    write_export,
)
from tracker.activity_monitor import ActivityMonitor
from tracker.classifier import ActivityState
from tracker.models import ProjectContext, TrackingData
from tracker.session_machine import SessionStateMachine, TickOutcome
from tracker.signals import ActivitySignal, SignalQueue
from tracker.time_utils import format_detailed_time, format_status_bar_time

logger = logging.getLogger(__name__)

TICK_INTERVAL = timedelta(seconds=1)


class TimeTracker:
    """
    Application context: wires the monitor, the session machine and the
    store together and drives them from one thread.

    Lifecycle: construct -> start() -> tick() every second -> stop() -> dispose().
    Host threads only ever call post_signal(); everything else runs on the
    thread that calls tick().
    """

    def __init__(
        self,
        config,
        store: JsonTrackingStore,
        resolve_project: Callable[[], Optional[ProjectContext]],
        clock: Callable[[], datetime] = datetime.now,
        window_focused: bool = True,
    ):
        self.config = config
        self.store = store
        self.clock = clock
        self.signals = SignalQueue()

        now = clock()
        self.monitor = ActivityMonitor(config, now, window_focused=window_focused)
        self.machine = SessionStateMachine(
            data=store.create_default_data(),
            config=config,
            is_active=self.monitor.is_active,
            resolve_project=resolve_project,
            persist=self.store.save,
        )
        self.monitor.on_activity(self.machine.handle_signal)

        self.is_running = False
        self._next_save: Optional[datetime] = None

        logger.info("TimeTracker initialized")

    @property
    def data(self) -> TrackingData:
        return self.machine.data

    @property
    def is_paused(self) -> bool:
        return self.machine.paused

    # ---------- lifecycle ----------

    def load(self) -> TrackingData:
        """Read the persisted data without starting; enough for reports, export and reset."""
        self.machine.data = self.store.load()
        return self.machine.data

    def start(self) -> None:
        if self.is_running:
            logger.info("TimeTracker already running")
            return

        now = self.clock()
        self.load()
        self.machine.paused = False
        self.machine.paused_by_sleep = False
        self.monitor.reset_activity(now)

        self.machine.restore(now)
        if self.config.auto_start:
            self.machine.start_or_resume(now)

        self._next_save = now + timedelta(seconds=self.config.save_interval)
        self.is_running = True

        logger.info("TimeTracker started (%d projects loaded)", len(self.data.projects))

    def stop(self) -> None:
        """Close the open session and write everything out. Raises if the save fails."""
        if not self.is_running:
            logger.info("TimeTracker not running, cannot stop")
            return

        try:
            now = self.clock()
            self.process_signals()
            self.machine.end(now)
            self.store.save(self.data)
        except Exception:
            logger.exception("Failed to stop TimeTracker")
            raise

        self.is_running = False
        self.machine.paused = False
        self.machine.paused_by_sleep = False
        self._next_save = None
        logger.info("TimeTracker stopped")

    def dispose(self) -> None:
        self.monitor.dispose()
        self.is_running = False
        logger.info("TimeTracker disposed")

    def update_config(self, config) -> None:
        self.config = config
        self.monitor.update_config(config)
        self.machine.config = config
        logger.info("Configuration updated")

    # ---------- event intake ----------

    def post_signal(self, signal: ActivitySignal) -> None:
        """Thread-safe; the signal is handled on the next tick."""
        self.signals.post(signal)

    def process_signals(self) -> int:
        signals = self.signals.drain()
        if not self.is_running:
            return 0
        for signal in signals:
            self.monitor.record(signal)
        return len(signals)

    def tick(self, now: Optional[datetime] = None) -> Optional[TickOutcome]:
        if not self.is_running:
            return None

        self.process_signals()
        now = now or self.clock()

        outcome: Optional[TickOutcome] = None
        try:
            self.monitor.check_heartbeat(now)
            outcome = self.machine.tick(now)
        except Exception:
            logger.exception("Error in tick")

        if self._next_save is not None and now >= self._next_save:
            self.autosave()
            self._next_save = now + timedelta(seconds=self.config.save_interval)

        return outcome

    def autosave(self) -> bool:
        # the next interval retries, so a failure here is only logged
        try:
            self.store.save(self.data)
        except Exception:
            logger.exception("Auto-save failed")
            return False
        logger.debug("Auto-save completed")
        return True

    # ---------- commands ----------

    def pause(self) -> None:
        if not self.is_running:
            logger.info("TimeTracker not running, cannot pause")
            return
        self.machine.pause(self.clock())

    def resume(self) -> None:
        if not self.is_running:
            logger.info("TimeTracker not running, cannot resume")
            return
        self.machine.resume(self.clock())

    def reset(self) -> bool:
        """Drop the open session. Callers must have asked the user first."""
        return self.machine.reset()

    def export(self, path: Path) -> Path:
        payload = build_export(self.data, self.clock())
        return write_export(path, payload)

    # ---------- views ----------

    def activity_state(self) -> ActivityState:
        return self.monitor.state(self.clock())

    def status_text(self) -> str:
        if not self.config.show_in_status_bar:
            return ""
        if not self.is_running:
            return "⏱ Stopped"
        if self.is_paused:
            return "⏸ Paused"
        session = self.data.current_session
        if session is None:
            return "⏱ Ready"
        today_ms = project_time_today(self.data, session.project_path, self.clock())
        return f"⏱ {format_status_bar_time(today_ms)}"

    def status_tooltip(self) -> str:
        if not self.is_running:
            return "Time tracker is stopped."
        if self.is_paused:
            return "Time tracker is paused."
        session = self.data.current_session
        if session is None:
            return "Time tracker is ready. Start working to begin tracking."
        today_ms = project_time_today(self.data, session.project_path, self.clock())
        return f"Today on {session.project_name}: {format_detailed_time(today_ms)}"

    def today_statistics(self) -> TimeStats:
        return today_project_times(self.data, self.clock())

    def detailed_log(self) -> List[DayLog]:
        return detailed_log(self.data)

    def todays_sessions(self) -> List[SessionEntry]:
        return todays_sessions(self.data, self.clock())

    def report(self) -> Report:
        return build_report(self.data, self.clock())
