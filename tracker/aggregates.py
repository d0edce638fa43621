# tracker/aggregates.py

from tracker.models import ProjectStats, TrackingData


def recalculate_project_stats(stats: ProjectStats) -> None:
    """
    Full recompute of the rollups over completed sessions.
    The open session is left out so it is not counted twice when shown
    next to the project totals.
    """
    completed = stats.completed_sessions()

    stats.total_time = sum(s.total_time for s in completed)
    stats.average_session_duration = stats.total_time / len(completed) if completed else 0.0
    stats.active_days = len({s.start_time.date() for s in completed})

    if completed:
        latest = max(completed, key=lambda s: s.last_activity)
        stats.last_activity = latest.last_activity


def recalculate_totals(data: TrackingData) -> None:
    data.total_time_tracked = sum(p.total_time for p in data.projects.values())
