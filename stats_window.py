# stats_window.py

from pathlib import Path

from PyQt5.QtCore import pyqtSignal
from PyQt5.QtWidgets import (
    QDialog,
    QVBoxLayout,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QPlainTextEdit,
    QTableWidget,
    QTableWidgetItem,
    QHeaderView,
    QTabWidget,
    QWidget,
)

from config import Config
from storage.reports import Report
from storage.workspaces import WorkspaceAggregator
from tracker.time_utils import (
    format_date,
    format_detailed_time,
    format_status_bar_time,
    format_time_of_day,
)


class StatsWindow(QDialog):
    """
    Statistics dialog:
    - today's time per project
    - detailed log, newest day first
    - today's sessions
    - totals over every workspace on this machine
    """

    refresh_requested = pyqtSignal()

    def __init__(self, config: Config, parent=None):
        super().__init__(parent)
        self.config = config
        self.aggregator = WorkspaceAggregator(Path(config.data_dir))
        self.report: Report | None = None

        self.setWindowTitle("CodeClock statistics")
        self.resize(900, 600)

        self._init_ui()

    # ---------- UI ----------

    def _init_ui(self):
        main_layout = QVBoxLayout()

        top_layout = QHBoxLayout()
        self.generated_label = QLabel()
        self.refresh_button = QPushButton("Refresh")
        self.refresh_button.clicked.connect(self.refresh_requested.emit)
        top_layout.addWidget(self.generated_label)
        top_layout.addStretch()
        top_layout.addWidget(self.refresh_button)

        self.tabs = QTabWidget()

        # today per project
        self.today_summary = QLabel()
        self.projects_table = QTableWidget()
        self.projects_table.setColumnCount(3)
        self.projects_table.setHorizontalHeaderLabels(["Project", "Time today", "Sessions"])
        header = self.projects_table.horizontalHeader()
        header.setSectionResizeMode(0, QHeaderView.Stretch)
        for col in range(1, 3):
            header.setSectionResizeMode(col, QHeaderView.ResizeToContents)

        today_tab = QWidget()
        today_layout = QVBoxLayout()
        today_layout.addWidget(self.today_summary)
        today_layout.addWidget(self.projects_table)
        today_tab.setLayout(today_layout)

        # today's sessions
        self.sessions_table = QTableWidget()
        self.sessions_table.setColumnCount(5)
        self.sessions_table.setHorizontalHeaderLabels(["Start", "End", "Duration", "Project", "Edits"])
        header = self.sessions_table.horizontalHeader()
        header.setSectionResizeMode(3, QHeaderView.Stretch)
        for col in (0, 1, 2, 4):
            header.setSectionResizeMode(col, QHeaderView.ResizeToContents)

        # detailed log and cross-workspace totals as plain text
        self.log_view = QPlainTextEdit()
        self.log_view.setReadOnly(True)
        self.workspaces_view = QPlainTextEdit()
        self.workspaces_view.setReadOnly(True)

        self.tabs.addTab(today_tab, "Today")
        self.tabs.addTab(self.sessions_table, "Today's sessions")
        self.tabs.addTab(self.log_view, "Detailed log")
        self.tabs.addTab(self.workspaces_view, "All workspaces")

        main_layout.addLayout(top_layout)
        main_layout.addWidget(self.tabs)
        self.setLayout(main_layout)

    # ---------- public, called by the main window ----------

    def set_report(self, report: Report):
        self.report = report
        self.generated_label.setText(f"Updated {format_time_of_day(report.generated_at)}")
        self._fill_today(report)
        self._fill_sessions(report)
        self._fill_log(report)
        self._fill_workspaces()

    # ---------- filling ----------

    def _fill_today(self, report: Report):
        stats = report.today
        if not stats.by_project:
            self.today_summary.setText("No time tracked today.")
        else:
            self.today_summary.setText(
                f"Today: {format_detailed_time(stats.total_ms)} in {stats.session_count} sessions"
            )

        self.projects_table.setRowCount(len(stats.by_project))
        for row, project in enumerate(stats.by_project):
            name = project["project_name"]
            if project["is_current"]:
                name += "  (current)"
            self.projects_table.setItem(row, 0, QTableWidgetItem(name))
            self.projects_table.setItem(row, 1, QTableWidgetItem(format_status_bar_time(project["total_ms"])))
            self.projects_table.setItem(row, 2, QTableWidgetItem(str(project["sessions"])))
        self.projects_table.resizeRowsToContents()

    def _fill_sessions(self, report: Report):
        sessions = report.sessions
        self.sessions_table.setRowCount(len(sessions))
        for row, entry in enumerate(sessions):
            if entry.running:
                end = "running"
            else:
                end = format_time_of_day(entry.end_time) if entry.end_time else ""
            self.sessions_table.setItem(row, 0, QTableWidgetItem(format_time_of_day(entry.start_time)))
            self.sessions_table.setItem(row, 1, QTableWidgetItem(end))
            self.sessions_table.setItem(row, 2, QTableWidgetItem(format_status_bar_time(entry.total_time)))
            self.sessions_table.setItem(row, 3, QTableWidgetItem(entry.project_name))
            self.sessions_table.setItem(
                row, 4, QTableWidgetItem(f"{entry.text_changes} / {entry.cursor_movements}")
            )
        self.sessions_table.resizeRowsToContents()

    def _fill_log(self, report: Report):
        if not report.log:
            self.log_view.setPlainText("No tracked time yet.")
            return

        lines = []
        for day in report.log:
            lines.append(f"{format_date(day.day)}   {format_detailed_time(day.total_ms)}")
            for entry in day.entries:
                marker = " *" if entry.running else ""
                lines.append(
                    f"    {format_time_of_day(entry.start_time)}  "
                    f"{format_status_bar_time(entry.total_time):>10}  {entry.project_name}{marker}"
                )
            lines.append("")
        self.log_view.setPlainText("\n".join(lines))

    def _fill_workspaces(self):
        aggregated = self.aggregator.refresh()
        if aggregated.workspace_count == 0:
            self.workspaces_view.setPlainText("No workspace data found.")
            return

        lines = [
            f"Workspaces: {aggregated.workspace_count}",
            "",
            f"Today:      {format_detailed_time(aggregated.today_total())}",
            f"This week:  {format_detailed_time(aggregated.week_total())}",
            f"This month: {format_detailed_time(aggregated.month_total())}",
            f"All time:   {format_detailed_time(aggregated.total_time)}",
            "",
            "Projects:",
        ]
        projects = sorted(aggregated.all_projects.values(), key=lambda p: p.total_time, reverse=True)
        for project in projects:
            lines.append(f"  {project.project_name:<40} {format_detailed_time(project.total_time)}")
        self.workspaces_view.setPlainText("\n".join(lines))
