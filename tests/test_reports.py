import json
from datetime import datetime, timedelta

from conftest import ALPHA, BETA, START, FakeClock
from test_session_machine import data_with, make_session
from storage.json_store import JsonTrackingStore
from storage.reports import (
    build_export,
    build_report,
    detailed_log,
    project_time_today,
    session_time_in_range,
    time_in_range,
    today_project_times,
    todays_sessions,
    write_export,
)
from storage.workspaces import CACHE_DURATION, WorkspaceAggregator
from tracker.aggregates import recalculate_project_stats, recalculate_totals
from tracker.time_utils import current_week_range, day_range

YESTERDAY = START - timedelta(days=1)


def sample_data():
    sessions = [
        make_session("y1", YESTERDAY, total=40_000, end=YESTERDAY + timedelta(hours=1)),
        make_session("t1", START - timedelta(hours=2), total=60_000, end=START - timedelta(hours=1)),
        make_session("b1", START - timedelta(hours=3), total=30_000, end=START - timedelta(hours=2), project=BETA),
    ]
    running = make_session("t2", START - timedelta(minutes=30), total=15_000)
    data = data_with(*sessions, running, current=running)
    for project in data.projects.values():
        recalculate_project_stats(project)
    recalculate_totals(data)
    return data


class TestRanges:
    def test_session_counts_on_its_start_day(self):
        start, end = day_range(START.date())
        assert session_time_in_range(START, 5000, start, end) == 5000
        assert session_time_in_range(YESTERDAY, 5000, start, end) == 0

    def test_time_in_range_includes_open_session_once(self):
        data = sample_data()
        assert time_in_range(data, *day_range(START.date())) == 60_000 + 30_000 + 15_000

    def test_project_time_today(self):
        data = sample_data()
        assert project_time_today(data, ALPHA.path, START) == 75_000
        assert project_time_today(data, "/nowhere", START) == 0


class TestViews:
    def test_today_project_times(self):
        stats = today_project_times(sample_data(), START)

        assert stats.total_ms == 105_000
        assert stats.session_count == 3
        names = [p["project_name"] for p in stats.by_project]
        assert names == ["alpha", "beta"]
        assert stats.by_project[0]["is_current"] is True
        assert stats.by_project[1]["is_current"] is False

    def test_detailed_log_newest_day_first(self):
        days = detailed_log(sample_data())

        assert [d.day for d in days] == [START.date(), YESTERDAY.date()]
        today = days[0]
        assert today.total_ms == 105_000
        assert [e.project_name for e in today.entries][0] == "alpha"
        assert today.entries[0].running is True

    def test_todays_sessions_oldest_first(self):
        entries = todays_sessions(sample_data(), START)
        assert [e.start_time for e in entries] == sorted(e.start_time for e in entries)
        assert len(entries) == 3
        assert [e.running for e in entries] == [False, False, True]

    def test_build_report(self):
        report = build_report(sample_data(), START)
        assert report.generated_at == START
        assert report.today.total_ms == 105_000
        assert len(report.log) == 2
        assert len(report.sessions) == 3


class TestExport:
    def test_export_shape(self):
        data = sample_data()
        payload = build_export(data, START)

        assert len(payload["projects"]) == len(data.projects)
        completed = sum(
            s.total_time for _, s in data.all_sessions() if s.end_time is not None
        )
        assert payload["totalTimeTracked"] == completed == 130_000
        assert payload["exportDate"] == "2024-03-14T10:00:00.000"

    def test_write_export(self, tmp_path):
        path = write_export(tmp_path / "out" / "export.json", build_export(sample_data(), START))
        raw = json.loads(path.read_text(encoding="utf-8"))
        assert raw["version"] == "1.0.0"
        assert {p["projectName"] for p in raw["projects"]} == {"alpha", "beta"}


class TestWorkspaceAggregator:
    def save_workspace(self, data_dir, workspace, data):
        store = JsonTrackingStore(data_dir, workspace_path=workspace, clock=FakeClock())
        data.workspace_path = store.workspace_path
        data.workspace_name = store.workspace_name
        store.save(data)

    def test_merges_every_workspace(self, tmp_path):
        self.save_workspace(tmp_path, "/work/one", sample_data())
        self.save_workspace(tmp_path, "/work/two", sample_data())
        aggregator = WorkspaceAggregator(tmp_path, clock=FakeClock())

        aggregated = aggregator.get()

        assert aggregated.workspace_count == 2
        assert len(aggregated.all_projects) == 4
        assert "one:/work/alpha" in aggregated.all_projects
        assert aggregated.all_projects["one:/work/alpha"].project_name == "alpha (one)"
        assert aggregated.total_time == 2 * 130_000
        assert aggregated.today_total(START) == 2 * 105_000
        assert aggregated.week_total(START) == 2 * 145_000
        assert aggregated.month_total(START) == 2 * 145_000

    def test_results_are_cached(self, tmp_path):
        clock = FakeClock()
        aggregator = WorkspaceAggregator(tmp_path, clock=clock)
        assert aggregator.get().workspace_count == 0

        self.save_workspace(tmp_path, "/work/one", sample_data())
        assert aggregator.get().workspace_count == 0

        clock.advance(seconds=CACHE_DURATION.total_seconds() + 1)
        assert aggregator.get().workspace_count == 1

    def test_refresh_forces_reload(self, tmp_path):
        aggregator = WorkspaceAggregator(tmp_path, clock=FakeClock())
        aggregator.get()
        self.save_workspace(tmp_path, "/work/one", sample_data())
        assert aggregator.refresh().workspace_count == 1

    def test_unreadable_workspace_is_skipped(self, tmp_path):
        self.save_workspace(tmp_path, "/work/one", sample_data())
        broken = tmp_path / "workspaces" / "broken"
        broken.mkdir(parents=True)
        (broken / "timeTrackingData.json").write_text("nope", encoding="utf-8")

        aggregated = WorkspaceAggregator(tmp_path, clock=FakeClock()).get()

        assert aggregated.workspace_count == 1


def test_week_range_starts_on_monday():
    # 2024-03-14 is a Thursday
    start, end = current_week_range(START)
    assert start == datetime(2024, 3, 11)
    assert end == datetime(2024, 3, 17, 23, 59, 59, 999000)
