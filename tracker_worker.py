# tracker_worker.py

from __future__ import annotations

import logging
from pathlib import Path
import queue
from typing import Any, Tuple

from PyQt5.QtCore import QThread, pyqtSignal

from config import Config
from notifier import send_notification
from storage.json_store import store_for_config
from tracker.active_window import FocusWatcher
from tracker.input_tracker import InputActivityTracker
from tracker.project_context import ProjectResolver
from tracker.time_tracker import TICK_INTERVAL, TimeTracker

logger = logging.getLogger(__name__)

# user-facing text per failed command
FAILURE_MESSAGES = {
    "start": "Failed to start time tracking.",
    "stop": "Failed to stop time tracking.",
    "reset": "Failed to reset the current session.",
    "export": "Failed to export tracking data.",
    "config": "Failed to apply the new settings.",
    "report": "Failed to build statistics.",
}


class TrackerWorker(QThread):
    """
    Thread that owns the TimeTracker and runs its one-second loop.

    The GUI never touches tracker state directly: it queues commands
    (pause, resume, reset, export, config, report) which run here between ticks.
    """

    status_updated = pyqtSignal(str)            # status-bar text
    tooltip_updated = pyqtSignal(str)
    paused_changed = pyqtSignal(bool)
    started_tracking = pyqtSignal()
    stopped_tracking = pyqtSignal()
    command_failed = pyqtSignal(str, str)       # command, message
    result_ready = pyqtSignal(str, object)      # command, payload

    def __init__(self, config: Config, parent=None):
        super().__init__(parent)
        self.config = config
        self._last_paused = False
        self._stop_flag = False
        self._commands: "queue.Queue[Tuple[str, Tuple[Any, ...]]]" = queue.Queue()

    # ---------- called from the GUI thread ----------

    def stop(self):
        """Ask the loop to end; the open session is closed and saved on the way out."""
        self._stop_flag = True

    def request(self, command: str, *args) -> None:
        self._commands.put((command, args))

    def pause_tracking(self):
        self.request("pause")

    def resume_tracking(self):
        self.request("resume")

    def reset_session(self):
        self.request("reset")

    def export_to(self, path: Path):
        self.request("export", Path(path))

    def apply_config(self, config: Config):
        self.request("config", config)

    def request_report(self):
        self.request("report")

    # ---------- worker thread ----------

    def _fail(self, command: str, error: Exception) -> None:
        message = FAILURE_MESSAGES.get(command, "Time tracker error.")
        logger.error("%s %s", message, error)
        self.command_failed.emit(command, f"{message}\n{error}")
        if self.config.notify_on_error:
            send_notification("CodeClock", message)

    def _run_commands(self, tracker: TimeTracker, resolver: ProjectResolver, focus: FocusWatcher) -> None:
        while True:
            try:
                command, args = self._commands.get_nowait()
            except queue.Empty:
                return

            try:
                if command == "pause":
                    tracker.pause()
                elif command == "resume":
                    tracker.resume()
                elif command == "reset":
                    self.result_ready.emit("reset", tracker.reset())
                elif command == "export":
                    self.result_ready.emit("export", tracker.export(args[0]))
                elif command == "config":
                    self.config = args[0]
                    tracker.update_config(self.config)
                    resolver.set_workspace_folders(self.config.workspace_folders)
                    focus.set_editor_apps(self.config.editor_apps)
                elif command == "report":
                    self.result_ready.emit("report", tracker.report())
                else:
                    logger.warning("Unknown worker command: %s", command)
            except Exception as e:
                self._fail(command, e)

    def _emit_status(self, tracker: TimeTracker) -> None:
        self.status_updated.emit(tracker.status_text())
        self.tooltip_updated.emit(tracker.status_tooltip())
        if tracker.is_paused != self._last_paused:
            self._last_paused = tracker.is_paused
            self.paused_changed.emit(tracker.is_paused)

    def run(self):
        self._stop_flag = False
        self._last_paused = False

        resolver = ProjectResolver(self.config.workspace_folders)
        tracker = TimeTracker(self.config, store_for_config(self.config), resolver)
        focus = FocusWatcher(self.config.editor_apps, tracker.post_signal)
        inputs = InputActivityTracker(tracker.post_signal, lambda: focus.is_focused)

        try:
            focus.poll()
            tracker.start()
        except Exception as e:
            self._fail("start", e)
            tracker.dispose()
            self.stopped_tracking.emit()
            return

        inputs.start()
        self.started_tracking.emit()
        self._emit_status(tracker)

        try:
            while not self._stop_flag:
                self._run_commands(tracker, resolver, focus)

                try:
                    focus.poll()
                except Exception:
                    logger.exception("Focus poll failed")

                tracker.tick()
                self._emit_status(tracker)

                self.msleep(int(TICK_INTERVAL.total_seconds() * 1000))
        finally:
            inputs.stop()
            # commands queued right before the stop still run
            self._run_commands(tracker, resolver, focus)
            try:
                tracker.stop()
            except Exception as e:
                self._fail("stop", e)
            tracker.dispose()
            self._emit_status(tracker)
            self.stopped_tracking.emit()
