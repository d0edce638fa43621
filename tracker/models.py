# tracker/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import os
from typing import Optional, Union

DATA_VERSION = "1.0.0"


@dataclass
class TimeSession:
    """
    One continuous unit of tracked work for a single project.

    total_time holds active milliseconds only; idle gaps never land here.
    A session never spans more than one calendar day (see midnight split).
    """

    id: str
    project_name: str
    project_path: str
    start_time: datetime
    last_activity: datetime
    last_active_time: datetime
    end_time: Optional[datetime] = None
    total_time: int = 0
    is_active: bool = True
    text_changes: int = 0
    cursor_movements: int = 0

    @property
    def is_open(self) -> bool:
        return self.end_time is None


@dataclass
class ProjectStats:
    project_name: str
    project_path: str
    first_session: datetime
    last_activity: datetime
    sessions: list[TimeSession] = field(default_factory=list)
    total_time: int = 0
    average_session_duration: float = 0.0
    active_days: int = 0

    def completed_sessions(self) -> list[TimeSession]:
        return [s for s in self.sessions if s.end_time is not None]


# ---------- current session slot ----------


@dataclass(frozen=True)
class NoSession:
    pass


@dataclass(frozen=True)
class OpenSession:
    session: TimeSession


SessionSlot = Union[NoSession, OpenSession]

NO_SESSION = NoSession()


@dataclass
class TrackingData:
    last_activity: datetime
    last_saved: datetime
    projects: dict[str, ProjectStats] = field(default_factory=dict)
    current: SessionSlot = NO_SESSION
    total_time_tracked: int = 0
    version: str = DATA_VERSION
    workspace_path: Optional[str] = None
    workspace_name: Optional[str] = None

    @property
    def current_session(self) -> Optional[TimeSession]:
        if isinstance(self.current, OpenSession):
            return self.current.session
        return None

    def all_sessions(self) -> list[tuple[ProjectStats, TimeSession]]:
        return [(p, s) for p in self.projects.values() for s in p.sessions]


# ---------- project identity ----------


@dataclass(frozen=True)
class ProjectContext:
    name: str
    path: str


def normalize_project_path(path: str) -> str:
    """Absolute, case-normalized path without a trailing separator."""
    normalized = os.path.normcase(os.path.abspath(os.path.expanduser(path)))
    stripped = normalized.rstrip("\\/")
    # keep filesystem roots like "/" or "C:\" intact
    if not stripped or stripped.endswith(":"):
        return normalized
    return stripped


def make_project_context(path: str, name: Optional[str] = None) -> ProjectContext:
    normalized = normalize_project_path(path)
    if name is None:
        name = os.path.basename(os.path.abspath(os.path.expanduser(path)).rstrip("\\/")) or normalized
    return ProjectContext(name=name, path=normalized)
