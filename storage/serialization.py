# storage/serialization.py

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from tracker.models import (
    DATA_VERSION,
    NO_SESSION,
    OpenSession,
    ProjectStats,
    TimeSession,
    TrackingData,
)


def to_iso(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds")


def from_iso(value: Optional[str], default: Optional[datetime] = None) -> Optional[datetime]:
    if not value:
        return default
    # files written by older builds end in "Z"
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is not None:
        moment = moment.astimezone().replace(tzinfo=None)
    return moment


# ---------- sessions ----------


def session_to_dict(session: TimeSession) -> dict[str, Any]:
    raw: dict[str, Any] = {
        "id": session.id,
        "projectName": session.project_name,
        "projectPath": session.project_path,
        "startTime": to_iso(session.start_time),
        "totalTime": int(session.total_time),
        "isActive": session.is_active,
        "lastActivity": to_iso(session.last_activity),
        "lastActiveTime": to_iso(session.last_active_time),
        "textChanges": session.text_changes,
        "cursorMovements": session.cursor_movements,
    }
    if session.end_time is not None:
        raw["endTime"] = to_iso(session.end_time)
    return raw


def session_from_dict(raw: dict[str, Any]) -> TimeSession:
    start_time = from_iso(raw["startTime"])
    last_activity = from_iso(raw.get("lastActivity"), start_time)
    return TimeSession(
        id=str(raw["id"]),
        project_name=raw.get("projectName", ""),
        project_path=raw.get("projectPath", ""),
        start_time=start_time,
        end_time=from_iso(raw.get("endTime")),
        total_time=max(0, int(raw.get("totalTime", 0) or 0)),
        is_active=bool(raw.get("isActive", False)),
        last_activity=last_activity,
        last_active_time=from_iso(raw.get("lastActiveTime"), last_activity),
        text_changes=int(raw.get("textChanges", 0) or 0),
        cursor_movements=int(raw.get("cursorMovements", 0) or 0),
    )


# ---------- projects ----------


def project_to_dict(project: ProjectStats) -> dict[str, Any]:
    return {
        "projectName": project.project_name,
        "projectPath": project.project_path,
        "totalTime": int(project.total_time),
        "sessions": [session_to_dict(s) for s in project.sessions],
        "lastActivity": to_iso(project.last_activity),
        "firstSession": to_iso(project.first_session),
        "averageSessionDuration": project.average_session_duration,
        "activeDays": project.active_days,
    }


def project_from_dict(raw: dict[str, Any]) -> ProjectStats:
    sessions = [session_from_dict(s) for s in raw.get("sessions") or []]
    first_session = from_iso(raw.get("firstSession"))
    if first_session is None:
        first_session = sessions[0].start_time if sessions else datetime.now()
    return ProjectStats(
        project_name=raw.get("projectName", ""),
        project_path=raw.get("projectPath", ""),
        first_session=first_session,
        last_activity=from_iso(raw.get("lastActivity"), first_session),
        sessions=sessions,
        total_time=int(raw.get("totalTime", 0) or 0),
        average_session_duration=float(raw.get("averageSessionDuration", 0) or 0),
        active_days=int(raw.get("activeDays", 0) or 0),
    )


# ---------- tracking data ----------


def tracking_data_to_dict(data: TrackingData) -> dict[str, Any]:
    raw: dict[str, Any] = {
        "projects": [
            {"key": key, "value": project_to_dict(project)}
            for key, project in data.projects.items()
        ],
        "lastActivity": to_iso(data.last_activity),
        "totalTimeTracked": int(data.total_time_tracked),
        "version": data.version,
        "lastSaved": to_iso(data.last_saved),
    }
    current = data.current_session
    if current is not None:
        raw["currentSession"] = session_to_dict(current)
    if data.workspace_path:
        raw["workspacePath"] = data.workspace_path
    if data.workspace_name:
        raw["workspaceName"] = data.workspace_name
    return raw


def tracking_data_from_dict(raw: dict[str, Any], now: Optional[datetime] = None) -> TrackingData:
    now = now or datetime.now()

    projects: dict[str, ProjectStats] = {}
    for entry in raw.get("projects") or []:
        projects[entry["key"]] = project_from_dict(entry["value"])

    data = TrackingData(
        projects=projects,
        last_activity=from_iso(raw.get("lastActivity"), now),
        last_saved=from_iso(raw.get("lastSaved"), now),
        total_time_tracked=int(raw.get("totalTimeTracked", 0) or 0),
        version=raw.get("version") or DATA_VERSION,
        workspace_path=raw.get("workspacePath") or None,
        workspace_name=raw.get("workspaceName") or None,
    )

    raw_current = raw.get("currentSession")
    if raw_current:
        data.current = OpenSession(_link_current_session(projects, session_from_dict(raw_current)))
    else:
        data.current = NO_SESSION

    return data


def _link_current_session(projects: dict[str, ProjectStats], loaded: TimeSession) -> TimeSession:
    """
    The open session is written twice (currentSession and inside its
    project). After loading both must be the same object, the copy from
    currentSession being the fresher one.
    """
    project = projects.get(loaded.project_path)
    if project is None:
        project = ProjectStats(
            project_name=loaded.project_name,
            project_path=loaded.project_path,
            first_session=loaded.start_time,
            last_activity=loaded.start_time,
        )
        projects[loaded.project_path] = project

    for index, session in enumerate(project.sessions):
        if session.id == loaded.id:
            project.sessions[index] = loaded
            return loaded

    project.sessions.append(loaded)
    return loaded
