# main_gui.py

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
import logging
from pathlib import Path
import sys

from PyQt5.QtCore import Qt, QObject, pyqtSignal
from PyQt5.QtGui import QPalette, QColor
from PyQt5.QtWidgets import (
    QApplication,
    QMainWindow,
    QWidget,
    QLabel,
    QPushButton,
    QSpinBox,
    QVBoxLayout,
    QHBoxLayout,
    QPlainTextEdit,
    QGroupBox,
    QFormLayout,
    QMessageBox,
    QCheckBox,
    QComboBox,
    QFileDialog,
    QStyleFactory,
)

from config import RANGES, Config, load_config, save_config
from main import make_tracker, setup_logging
from stats_window import StatsWindow
from storage.reports import Report
from tracker_worker import TrackerWorker

logger = logging.getLogger(__name__)


# --------- QSS for the light and dark themes ---------

THEME_COLORS = {
    "light": {
        "window": "#f5f5f7",
        "border": "#d0d0d0",
        "button": "#ffffff",
        "button_text": "#000000",
        "hover": "#e8f0ff",
        "pressed": "#d0e0ff",
        "accent": "#5b8def",
        "input": "#ffffff",
        "disabled": "#eeeeee",
        "disabled_text": "#999999",
    },
    "dark": {
        "window": "#353535",
        "border": "#555555",
        "button": "#444444",
        "button_text": "#ffffff",
        "hover": "#505a6b",
        "pressed": "#3c4454",
        "accent": "#7aa2ff",
        "input": "#3b3b3b",
        "disabled": "#3a3a3a",
        "disabled_text": "#777777",
    },
}


def build_style_sheet(theme_key: str) -> str:
    c = THEME_COLORS[theme_key]
    return f"""
QWidget {{
    font-family: "Segoe UI", "Roboto", "Arial";
    font-size: 10pt;
}}
QMainWindow {{
    background-color: {c["window"]};
}}
QGroupBox {{
    border: 1px solid {c["border"]};
    border-radius: 8px;
    margin-top: 16px;
    padding-top: 12px;
}}
QGroupBox::title {{
    subcontrol-origin: margin;
    subcontrol-position: top left;
    padding: 0 6px;
    font-weight: 600;
}}
QPushButton {{
    border-radius: 6px;
    padding: 6px 12px;
    border: 1px solid {c["border"]};
    background-color: {c["button"]};
    color: {c["button_text"]};
}}
QPushButton:hover {{
    background-color: {c["hover"]};
    border-color: {c["accent"]};
}}
QPushButton:pressed {{
    background-color: {c["pressed"]};
}}
QPushButton:disabled {{
    background-color: {c["disabled"]};
    color: {c["disabled_text"]};
}}
QPlainTextEdit, QSpinBox, QComboBox {{
    border-radius: 4px;
    padding: 4px;
    border: 1px solid {c["border"]};
    background-color: {c["input"]};
}}
QPlainTextEdit:focus, QSpinBox:focus, QComboBox:focus {{
    border-color: {c["accent"]};
}}
#status_label {{
    font-size: 14pt;
    font-weight: 600;
}}
"""


class LogEmitter(QObject):
    message = pyqtSignal(str)


class QtLogHandler(logging.Handler):
    """Forwards log records to the log panel; safe to call from any thread."""

    def __init__(self, emitter: LogEmitter):
        super().__init__(level=logging.INFO)
        self.emitter = emitter
        self.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))

    def emit(self, record):
        try:
            self.emitter.message.emit(self.format(record))
        except RuntimeError:
            # the window is already gone during shutdown
            pass


class MainWindow(QMainWindow):
    def __init__(self, config: Config | None = None):
        super().__init__()

        self.setWindowTitle("CodeClock")
        self.resize(900, 800)

        self.config: Config = config or load_config()
        self.worker: TrackerWorker | None = None
        self.stats_window: StatsWindow | None = None
        self.paused = False

        self.log_emitter = LogEmitter()
        self.log_emitter.message.connect(self.append_log)
        self.log_handler = QtLogHandler(self.log_emitter)
        logging.getLogger().addHandler(self.log_handler)

        self._init_ui()
        self._load_config_to_ui()
        self._update_buttons(running=False)

        if self.config.auto_start and self.config.workspace_folders:
            self.on_start_clicked()

    # ---------- UI ----------

    def _init_ui(self):
        self.status_label = QLabel("⏱ Stopped")
        self.status_label.setObjectName("status_label")
        self.status_label.setAlignment(Qt.AlignLeft)

        self.theme_combo = QComboBox()
        self.theme_combo.addItem("Dark (Fusion)", "dark")
        self.theme_combo.addItem("Light (Fusion)", "light")
        self.theme_combo.addItem("System", "system")
        self.theme_combo.currentIndexChanged.connect(self.on_theme_changed)

        # numeric options, ranges shared with config clamping
        self.idle_threshold_spin = QSpinBox()
        self.idle_threshold_spin.setRange(*RANGES["idle_threshold"])
        self.save_interval_spin = QSpinBox()
        self.save_interval_spin.setRange(*RANGES["save_interval"])
        self.auto_end_idle_spin = QSpinBox()
        self.auto_end_idle_spin.setRange(*RANGES["auto_end_idle_threshold"])

        self.auto_start_check = QCheckBox("Start tracking automatically")
        self.status_bar_check = QCheckBox("Show time in the status bar")
        self.track_background_check = QCheckBox("Keep tracking while the editor is in the background")
        self.auto_end_idle_check = QCheckBox("End the session after a long idle period")
        self.auto_end_project_check = QCheckBox("Start a new session when the project changes")
        self.notify_error_check = QCheckBox("Desktop notification on errors")

        self.workspace_edit = QPlainTextEdit()
        self.workspace_edit.setPlaceholderText("One folder per line, the first one is tracked")
        self.workspace_edit.setMinimumHeight(60)
        self.add_folder_button = QPushButton("Add folder…")
        self.add_folder_button.clicked.connect(self.on_add_folder_clicked)

        self.editor_apps_edit = QPlainTextEdit()
        self.editor_apps_edit.setPlaceholderText("One process name per line (e.g. code.exe)")
        self.editor_apps_edit.setMinimumHeight(60)

        self.log_edit = QPlainTextEdit()
        self.log_edit.setReadOnly(True)
        self.log_edit.setMinimumHeight(200)

        self.save_button = QPushButton("Save settings")
        self.start_button = QPushButton("Start tracking")
        self.pause_button = QPushButton("Pause")
        self.stop_button = QPushButton("Stop")
        self.reset_button = QPushButton("Reset session…")
        self.stats_button = QPushButton("Statistics…")
        self.export_button = QPushButton("Export…")

        self.save_button.clicked.connect(self.on_save_clicked)
        self.start_button.clicked.connect(self.on_start_clicked)
        self.pause_button.clicked.connect(self.on_pause_clicked)
        self.stop_button.clicked.connect(self.on_stop_clicked)
        self.reset_button.clicked.connect(self.on_reset_clicked)
        self.stats_button.clicked.connect(self.on_open_stats)
        self.export_button.clicked.connect(self.on_export_clicked)

        settings_group = QGroupBox("Settings")
        form = QFormLayout()
        form.addRow("Theme:", self.theme_combo)
        form.addRow("Idle threshold (min):", self.idle_threshold_spin)
        form.addRow("Auto-save interval (s):", self.save_interval_spin)
        form.addRow("End session after idle (min):", self.auto_end_idle_spin)
        form.addRow(self.auto_start_check)
        form.addRow(self.status_bar_check)
        form.addRow(self.track_background_check)
        form.addRow(self.auto_end_idle_check)
        form.addRow(self.auto_end_project_check)
        form.addRow(self.notify_error_check)

        folders_layout = QVBoxLayout()
        folders_layout.addWidget(self.workspace_edit)
        folders_layout.addWidget(self.add_folder_button, alignment=Qt.AlignRight)
        form.addRow("Workspace folders:", folders_layout)
        form.addRow("Editor processes:", self.editor_apps_edit)
        settings_group.setLayout(form)

        log_group = QGroupBox("Log")
        log_layout = QVBoxLayout()
        log_layout.addWidget(self.log_edit)
        log_group.setLayout(log_layout)

        btn_layout = QHBoxLayout()
        btn_layout.addWidget(self.save_button)
        btn_layout.addStretch()
        btn_layout.addWidget(self.start_button)
        btn_layout.addWidget(self.pause_button)
        btn_layout.addWidget(self.stop_button)

        report_layout = QHBoxLayout()
        report_layout.addWidget(self.stats_button)
        report_layout.addWidget(self.export_button)
        report_layout.addStretch()
        report_layout.addWidget(self.reset_button)

        main_layout = QVBoxLayout()
        main_layout.addWidget(self.status_label)
        main_layout.addWidget(settings_group)
        main_layout.addLayout(btn_layout)
        main_layout.addLayout(report_layout)
        main_layout.addWidget(log_group, 2)

        central = QWidget()
        central.setLayout(main_layout)
        self.setCentralWidget(central)

    # ---------- config ----------

    def _load_config_to_ui(self):
        cfg = self.config

        self.idle_threshold_spin.setValue(cfg.idle_threshold)
        self.save_interval_spin.setValue(cfg.save_interval)
        self.auto_end_idle_spin.setValue(cfg.auto_end_idle_threshold)
        self.auto_start_check.setChecked(cfg.auto_start)
        self.status_bar_check.setChecked(cfg.show_in_status_bar)
        self.track_background_check.setChecked(cfg.track_background)
        self.auto_end_idle_check.setChecked(cfg.auto_end_session_after_idle)
        self.auto_end_project_check.setChecked(cfg.auto_end_session_on_project_change)
        self.notify_error_check.setChecked(cfg.notify_on_error)
        self.workspace_edit.setPlainText("\n".join(cfg.workspace_folders))
        self.editor_apps_edit.setPlainText("\n".join(cfg.editor_apps))

        theme_key = cfg.theme
        idx = self.theme_combo.findData(theme_key)
        if idx == -1:
            idx = 0
            theme_key = self.theme_combo.itemData(0)
        self.theme_combo.blockSignals(True)
        self.theme_combo.setCurrentIndex(idx)
        self.theme_combo.blockSignals(False)
        self.apply_theme(theme_key)

    @staticmethod
    def _text_to_list(text: str) -> list[str]:
        return [line.strip() for line in text.splitlines() if line.strip()]

    def _save_ui_to_config(self):
        cfg = self.config
        cfg.idle_threshold = self.idle_threshold_spin.value()
        cfg.save_interval = self.save_interval_spin.value()
        cfg.auto_end_idle_threshold = self.auto_end_idle_spin.value()
        cfg.auto_start = self.auto_start_check.isChecked()
        cfg.show_in_status_bar = self.status_bar_check.isChecked()
        cfg.track_background = self.track_background_check.isChecked()
        cfg.auto_end_session_after_idle = self.auto_end_idle_check.isChecked()
        cfg.auto_end_session_on_project_change = self.auto_end_project_check.isChecked()
        cfg.notify_on_error = self.notify_error_check.isChecked()
        cfg.workspace_folders = self._text_to_list(self.workspace_edit.toPlainText())
        cfg.editor_apps = self._text_to_list(self.editor_apps_edit.toPlainText())
        cfg.normalized()
        save_config(cfg)

        # the worker gets its own copy, it reads it from another thread
        if self._is_running():
            self.worker.apply_config(replace(cfg, editor_apps=list(cfg.editor_apps),
                                             workspace_folders=list(cfg.workspace_folders)))

    # ---------- theme ----------

    def apply_theme(self, theme_key: str):
        app = QApplication.instance()
        if app is None:
            return

        theme_key = theme_key or "dark"
        app.setStyleSheet("")

        if theme_key == "system":
            app.setStyle(app.style().objectName())
            app.setPalette(app.style().standardPalette())
            return

        app.setStyle(QStyleFactory.create("Fusion"))
        if theme_key == "dark":
            dark_palette = QPalette()
            dark_palette.setColor(QPalette.Window, QColor(53, 53, 53))
            dark_palette.setColor(QPalette.WindowText, Qt.white)
            dark_palette.setColor(QPalette.Base, QColor(35, 35, 35))
            dark_palette.setColor(QPalette.AlternateBase, QColor(53, 53, 53))
            dark_palette.setColor(QPalette.Text, Qt.white)
            dark_palette.setColor(QPalette.Button, QColor(53, 53, 53))
            dark_palette.setColor(QPalette.ButtonText, Qt.white)
            dark_palette.setColor(QPalette.Highlight, QColor(42, 130, 218))
            dark_palette.setColor(QPalette.HighlightedText, Qt.black)
            app.setPalette(dark_palette)
        else:
            theme_key = "light"
            app.setPalette(app.style().standardPalette())
        app.setStyleSheet(build_style_sheet(theme_key))

    def on_theme_changed(self, index: int):
        key = self.theme_combo.itemData(index)
        if not key:
            return
        self.apply_theme(key)
        self.config.theme = key
        save_config(self.config)
        self.append_log(f"Theme changed: {key}")

    # ---------- buttons ----------

    def _is_running(self) -> bool:
        return self.worker is not None and self.worker.isRunning()

    def _update_buttons(self, running: bool):
        self.start_button.setEnabled(not running)
        self.pause_button.setEnabled(running)
        self.stop_button.setEnabled(running)
        self.pause_button.setText("Resume" if self.paused else "Pause")

    def on_add_folder_clicked(self):
        folder = QFileDialog.getExistingDirectory(self, "Choose workspace folder")
        if folder:
            self.workspace_edit.appendPlainText(folder)

    def on_save_clicked(self):
        self._save_ui_to_config()
        QMessageBox.information(self, "Saved", "Settings saved to config.json.")
        self.append_log("Settings saved.")

    def on_start_clicked(self):
        if self._is_running():
            QMessageBox.warning(self, "Already running", "The tracker is already running.")
            return

        self._save_ui_to_config()
        if not self.config.workspace_folders:
            self.append_log("No workspace folder configured, sessions start once one is added.")

        self.append_log("Starting time tracking...")
        self.worker = TrackerWorker(replace(self.config), self)
        self.worker.status_updated.connect(self.on_worker_status)
        self.worker.tooltip_updated.connect(self.status_label.setToolTip)
        self.worker.paused_changed.connect(self.on_worker_paused)
        self.worker.started_tracking.connect(self.on_worker_started)
        self.worker.stopped_tracking.connect(self.on_worker_stopped)
        self.worker.command_failed.connect(self.on_worker_failed)
        self.worker.result_ready.connect(self.on_worker_result)
        self.worker.start()

    def on_pause_clicked(self):
        if not self._is_running():
            return
        if self.paused:
            self.worker.resume_tracking()
        else:
            self.worker.pause_tracking()

    def on_stop_clicked(self):
        if self._is_running():
            self.append_log("Stopping time tracking...")
            self.worker.stop()
            self.worker.wait()
        else:
            self.append_log("The tracker is already stopped.")

    def on_reset_clicked(self):
        reply = QMessageBox.question(
            self,
            "Reset session",
            "Reset the current session? Its tracked time will be lost.",
            QMessageBox.Yes | QMessageBox.No,
            QMessageBox.No,
        )
        if reply != QMessageBox.Yes:
            return

        if self._is_running():
            self.worker.reset_session()
            return

        try:
            tracker = make_tracker(self.config)
            tracker.load()
            removed = tracker.reset()
        except Exception as e:
            logger.exception("Reset failed")
            QMessageBox.critical(self, "Reset failed", f"Failed to reset the current session.\n{e}")
            return
        self.on_worker_result("reset", removed)

    def on_export_clicked(self):
        default_name = f"codeclock-export-{datetime.now():%Y-%m-%d}.json"
        path, _ = QFileDialog.getSaveFileName(
            self, "Export time tracking data", str(Path.home() / default_name), "JSON files (*.json)"
        )
        if not path:
            return

        if self._is_running():
            self.worker.export_to(Path(path))
            return

        try:
            tracker = make_tracker(self.config)
            tracker.load()
            exported = tracker.export(Path(path))
        except Exception as e:
            logger.exception("Export failed")
            QMessageBox.critical(self, "Export failed", f"Failed to export tracking data.\n{e}")
            return
        self.on_worker_result("export", exported)

    def on_open_stats(self):
        if self._is_running():
            self.worker.request_report()
            return

        try:
            tracker = make_tracker(self.config)
            tracker.load()
            report = tracker.report()
        except Exception as e:
            logger.exception("Statistics failed")
            QMessageBox.critical(self, "Statistics", f"Failed to build statistics.\n{e}")
            return
        self.show_stats(report)

    # ---------- worker signals ----------

    def on_worker_status(self, text: str):
        self.status_label.setText(text)
        self.statusBar().showMessage(text)

    def on_worker_paused(self, paused: bool):
        self.paused = paused
        self._update_buttons(running=True)

    def on_worker_started(self):
        self.paused = False
        self._update_buttons(running=True)

    def on_worker_stopped(self):
        self.paused = False
        self._update_buttons(running=False)

    def on_worker_failed(self, command: str, message: str):
        self.append_log(message.replace("\n", " "))
        QMessageBox.warning(self, "CodeClock", message)

    def on_worker_result(self, command: str, payload):
        if command == "report":
            self.show_stats(payload)
        elif command == "export":
            QMessageBox.information(self, "Exported", f"Data exported to {payload}")
        elif command == "reset":
            self.append_log("Session reset." if payload else "No open session to reset.")

    # ---------- statistics ----------

    def show_stats(self, report: Report):
        if self.stats_window is None:
            self.stats_window = StatsWindow(self.config, self)
            self.stats_window.refresh_requested.connect(self.on_open_stats)
        self.stats_window.set_report(report)
        self.stats_window.show()
        self.stats_window.raise_()
        self.stats_window.activateWindow()

    # ---------- helpers ----------

    def append_log(self, text: str):
        ts = datetime.now().strftime("%H:%M:%S")
        self.log_edit.appendPlainText(f"[{ts}] {text}")

    def closeEvent(self, event):
        if self._is_running():
            reply = QMessageBox.question(
                self,
                "Quit",
                "The tracker is running. Stop it and quit?",
                QMessageBox.Yes | QMessageBox.No,
                QMessageBox.Yes,
            )
            if reply == QMessageBox.No:
                event.ignore()
                return
            self.worker.stop()
            self.worker.wait()
        logging.getLogger().removeHandler(self.log_handler)
        event.accept()


def main():
    config = load_config()
    setup_logging(config)

    app = QApplication(sys.argv)
    window = MainWindow(config)
    window.show()
    sys.exit(app.exec_())


if __name__ == "__main__":
    main()
