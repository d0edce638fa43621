# storage/reports.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from storage.serialization import project_to_dict, to_iso
from tracker.models import TimeSession, TrackingData
from tracker.time_utils import day_range

logger = logging.getLogger(__name__)


@dataclass
class TimeStats:
    period_start: datetime
    period_end: datetime
    total_ms: int
    session_count: int
    by_project: List[Dict[str, Any]]


@dataclass
class SessionEntry:
    project_name: str
    project_path: str
    start_time: datetime
    end_time: Optional[datetime]
    total_time: int
    text_changes: int
    cursor_movements: int
    running: bool


@dataclass
class DayLog:
    day: date
    total_ms: int
    entries: List[SessionEntry] = field(default_factory=list)


def session_time_in_range(
    session_start: datetime,
    session_total_time: int,
    range_start: datetime,
    range_end: datetime,
) -> int:
    """
    Time a session contributes to [range_start; range_end].

    Sessions are split at midnight, so each belongs to exactly one day:
    it counts in full when its start date lies inside the range's dates.
    """
    if range_start.date() <= session_start.date() <= range_end.date():
        return session_total_time
    return 0


def _entry(data: TrackingData, session: TimeSession) -> SessionEntry:
    return SessionEntry(
        project_name=session.project_name,
        project_path=session.project_path,
        start_time=session.start_time,
        end_time=session.end_time,
        total_time=session.total_time,
        text_changes=session.text_changes,
        cursor_movements=session.cursor_movements,
        running=session is data.current_session,
    )


def get_time_stats(data: TrackingData, start: datetime, end: datetime) -> TimeStats:
    """
    Aggregated time per project over a range of days.
    The open session is included; it lives in its project's list, so it is
    counted exactly once.
    """
    current = data.current_session
    total = 0
    count = 0
    by_project: List[Dict[str, Any]] = []

    for project in data.projects.values():
        project_ms = 0
        project_sessions = 0
        for session in project.sessions:
            contribution = session_time_in_range(session.start_time, session.total_time, start, end)
            if start.date() <= session.start_time.date() <= end.date():
                project_sessions += 1
            project_ms += contribution

        if project_sessions == 0:
            continue

        total += project_ms
        count += project_sessions
        by_project.append(
            {
                "project_name": project.project_name,
                "project_path": project.project_path,
                "total_ms": project_ms,
                "sessions": project_sessions,
                "is_current": current is not None and current.project_path == project.project_path,
            }
        )

    by_project.sort(key=lambda p: p["total_ms"], reverse=True)

    return TimeStats(
        period_start=start,
        period_end=end,
        total_ms=total,
        session_count=count,
        by_project=by_project,
    )


def today_project_times(data: TrackingData, now: Optional[datetime] = None) -> TimeStats:
    """Today's time per project, projects without time today left out."""
    now = now or datetime.now()
    start, end = day_range(now.date())
    stats = get_time_stats(data, start, end)
    stats.by_project = [p for p in stats.by_project if p["total_ms"] > 0 or p["is_current"]]
    return stats


def project_time_in_range(data: TrackingData, project_path: str, start: datetime, end: datetime) -> int:
    project = data.projects.get(project_path)
    if project is None:
        return 0
    return sum(session_time_in_range(s.start_time, s.total_time, start, end) for s in project.sessions)


def time_in_range(data: TrackingData, start: datetime, end: datetime) -> int:
    return sum(
        session_time_in_range(s.start_time, s.total_time, start, end) for _, s in data.all_sessions()
    )


def project_time_today(data: TrackingData, project_path: str, now: Optional[datetime] = None) -> int:
    now = now or datetime.now()
    return project_time_in_range(data, project_path, *day_range(now.date()))


def detailed_log(data: TrackingData) -> List[DayLog]:
    """All sessions grouped by start day, newest day and newest session first."""
    days: Dict[date, DayLog] = {}
    sessions = sorted((s for _, s in data.all_sessions()), key=lambda s: s.start_time, reverse=True)

    for session in sessions:
        day = session.start_time.date()
        log = days.get(day)
        if log is None:
            log = days[day] = DayLog(day=day, total_ms=0)
        log.entries.append(_entry(data, session))
        log.total_ms += session.total_time

    return sorted(days.values(), key=lambda d: d.day, reverse=True)


def todays_sessions(data: TrackingData, now: Optional[datetime] = None) -> List[SessionEntry]:
    now = now or datetime.now()
    today = now.date()
    entries = [_entry(data, s) for _, s in data.all_sessions() if s.start_time.date() == today]
    entries.sort(key=lambda e: e.start_time)
    return entries


# ---------- export ----------


def build_export(data: TrackingData, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.now()
    projects = [project_to_dict(p) for p in data.projects.values()]
    return {
        "exportDate": to_iso(now),
        "version": data.version,
        "projects": projects,
        "totalTimeTracked": sum(p.total_time for p in data.projects.values()),
    }


def write_export(path: Path, payload: Dict[str, Any]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
    logger.info("Data exported to %s", path)
    return path


@dataclass
class Report:
    """Everything the statistics views show, computed in one go."""

    generated_at: datetime
    today: TimeStats
    log: List[DayLog]
    sessions: List[SessionEntry]


def build_report(data: TrackingData, now: Optional[datetime] = None) -> Report:
    now = now or datetime.now()
    return Report(
        generated_at=now,
        today=today_project_times(data, now),
        log=detailed_log(data),
        sessions=todays_sessions(data, now),
    )
