# tracker/session_machine.py

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
import logging
import uuid
from typing import Callable, Optional

from tracker.aggregates import recalculate_project_stats, recalculate_totals
from tracker.models import (
    NO_SESSION,
    OpenSession,
    ProjectContext,
    ProjectStats,
    TimeSession,
    TrackingData,
)
from tracker.signals import ACTIVITY_KINDS, ActivitySignal, SignalKind
from tracker.time_utils import elapsed_ms, end_of_day, format_detailed_time, safe_time_difference

logger = logging.getLogger(__name__)

# an open session whose last activity is younger than this is reopened
# instead of starting a fresh one
RESUME_WINDOW = timedelta(minutes=30)

# activity this soon after the last credited moment is credited too
ACTIVITY_GRACE = timedelta(seconds=2)


class TickOutcome(str, Enum):
    PAUSED = "paused"
    NO_SESSION = "no_session"
    STARTED = "started"
    SPLIT = "split"
    NO_PROJECT = "no_project"
    PROJECT_CHANGED = "project_changed"
    IDLE_TIMEOUT = "idle_timeout"
    ACCRUED = "accrued"
    NOT_ACTIVE = "not_active"


def generate_session_id() -> str:
    return uuid.uuid4().hex


class SessionStateMachine:
    """
    Owns the current session and every mutation of the session lists.

    Collaborators are plain callables so the machine can be driven by a
    synthetic signal stream:
    - is_active(now): classifier verdict
    - resolve_project(): ProjectContext of the editor, or None
    - persist(data): durable save, called right after end/split/reset
    """

    def __init__(
        self,
        data: TrackingData,
        config,
        is_active: Callable[[datetime], bool],
        resolve_project: Callable[[], Optional[ProjectContext]],
        persist: Callable[[TrackingData], None],
        new_session_id: Callable[[], str] = generate_session_id,
    ):
        self.data = data
        self.config = config
        self._is_active = is_active
        self._resolve_project = resolve_project
        self._persist = persist
        self._new_session_id = new_session_id

        self.paused = False
        self.paused_by_sleep = False

    @property
    def current(self) -> Optional[TimeSession]:
        return self.data.current_session

    # ---------- start / resume ----------

    def start_or_resume(self, now: datetime) -> Optional[TimeSession]:
        if self.current is not None:
            return self.current

        project = self._resolve_project()
        if project is None:
            logger.debug("No current project detected, cannot start session")
            return None

        existing = self._find_recent_open_session(project.path)

        if existing is not None and now - existing.last_activity < RESUME_WINDOW:
            existing.is_active = True
            existing.last_activity = now
            existing.last_active_time = now
            self.data.current = OpenSession(existing)
            logger.info("Resumed existing session for %s", project.name)
            return existing

        if existing is not None:
            self._close_stale(existing)

        session = TimeSession(
            id=self._new_session_id(),
            project_name=project.name,
            project_path=project.path,
            start_time=now,
            last_activity=now,
            last_active_time=now,
        )
        self._add_session_to_project(session)
        self.data.current = OpenSession(session)
        logger.info("Started new session for %s", project.name)
        return session

    def restore(self, now: datetime) -> None:
        """
        Bring freshly loaded data in line with the one-open-session rule.

        Open sessions other than the current one are leftovers of a crash and
        get closed at their last activity. The current one is kept if it is
        still inside the resume window.
        """
        current = self.current

        for project in self.data.projects.values():
            stale = [s for s in project.sessions if s.is_open and s is not current]
            for session in stale:
                self._close_stale(session)

        if current is None:
            return

        if now - current.last_activity < RESUME_WINDOW:
            current.is_active = True
            current.last_activity = now
            current.last_active_time = now
            logger.info("Restored open session for %s", current.project_name)
        else:
            self._close_stale(current)
            self.data.current = NO_SESSION
            logger.info("Closed stale session for %s", current.project_name)

    # ---------- tick ----------

    def tick(self, now: datetime) -> TickOutcome:
        if self.paused:
            return TickOutcome.PAUSED

        session = self.current
        if session is None:
            if self.config.auto_start and self._is_active(now):
                if self.start_or_resume(now) is not None:
                    return TickOutcome.STARTED
            return TickOutcome.NO_SESSION

        # each check may close the session and cut the tick short
        if now.date() > session.start_time.date():
            self.split_at_midnight(now)
            return TickOutcome.SPLIT

        project = self._resolve_project()
        if project is None:
            logger.info("No project detected, ending current session")
            self.end(now)
            return TickOutcome.NO_PROJECT

        if self.config.auto_end_session_on_project_change and project.path != session.project_path:
            logger.info(
                "Project change detected: %s -> %s",
                session.project_name,
                project.name,
            )
            self.end(now)
            self.start_or_resume(now)
            return TickOutcome.PROJECT_CHANGED

        if self.config.auto_end_session_after_idle:
            idle_limit = timedelta(minutes=self.config.auto_end_idle_threshold)
            if now - session.last_active_time > idle_limit:
                logger.info("Session idle for more than %s min, ending it", self.config.auto_end_idle_threshold)
                self.end(now)
                return TickOutcome.IDLE_TIMEOUT

        if not session.is_active or not self._is_active(now):
            return TickOutcome.NOT_ACTIVE

        self._credit(session, now)
        self._mark(session, now)
        return TickOutcome.ACCRUED

    # ---------- signals ----------

    def handle_signal(self, signal: ActivitySignal) -> None:
        if signal.kind == SignalKind.SLEEP:
            self.on_sleep(signal.timestamp)
            return
        if signal.kind == SignalKind.WAKE:
            self.on_wake(signal.timestamp)
            return

        if self.paused:
            return

        session = self.current
        if session is None and self.config.auto_start and signal.kind in ACTIVITY_KINDS:
            session = self.start_or_resume(signal.timestamp)

        if session is not None:
            if signal.kind == SignalKind.TEXT_CHANGE:
                session.text_changes += 1
            elif signal.kind == SignalKind.CURSOR_CHANGE:
                session.cursor_movements += 1
            self._touch(session, signal.timestamp)

        logger.debug("Activity processed: %s (session=%s)", signal.kind.value, self.current is not None)

    def on_sleep(self, at: datetime) -> None:
        session = self.current
        if session is None or self.paused:
            return

        if self.config.auto_end_session_after_idle:
            logger.info("Sleep detected at %s, ending session", at.isoformat())
            self.end(at, end_time=at)
        else:
            logger.info("Sleep detected at %s, pausing session", at.isoformat())
            session.is_active = False
            if at > session.last_activity:
                session.last_activity = at
            self.paused = True
            self.paused_by_sleep = True

    def on_wake(self, at: datetime) -> None:
        session = self.current
        if self.paused and self.paused_by_sleep and session is not None:
            logger.info("Wake detected at %s, resuming session", at.isoformat())
            self.paused = False
            self.paused_by_sleep = False
            session.is_active = True
            session.last_activity = at
            session.last_active_time = at
        elif self.config.auto_start and session is None and not self.paused:
            logger.info("Wake detected at %s, starting session", at.isoformat())
            self.start_or_resume(at)
        elif session is not None and not self.paused:
            # the frozen stretch before the wake is never credited
            self._mark(session, at)

    # ---------- explicit commands ----------

    def pause(self, now: datetime) -> None:
        self.paused = True
        self.paused_by_sleep = False
        session = self.current
        if session is not None:
            session.is_active = False
        logger.info("Tracking paused")

    def resume(self, now: datetime) -> None:
        self.paused = False
        self.paused_by_sleep = False
        session = self.current
        if session is not None:
            session.is_active = True
            session.last_activity = now
            session.last_active_time = now
        logger.info("Tracking resumed")

    def end(self, now: datetime, end_time: Optional[datetime] = None) -> bool:
        """Close the current session. Returns False when nothing was open."""
        session = self.current
        if session is None:
            return False

        final_end = end_time or now
        if final_end < session.start_time:
            final_end = session.start_time
        # a session never crosses its start day, paused ones included
        final_end = min(final_end, end_of_day(session.start_time))

        if session.is_active and self._is_active(now) and session.last_active_time < final_end:
            self._credit(session, final_end)

        session.end_time = final_end
        session.is_active = False
        self.data.current = NO_SESSION
        self.paused_by_sleep = False

        self._recalculate(session.project_path)

        logger.info(
            "Session ended for %s (%s)",
            session.project_name,
            format_detailed_time(session.total_time),
        )
        self._persist(self.data)
        return True

    def split_at_midnight(self, now: datetime) -> Optional[TimeSession]:
        """
        Close the open session at 23:59:59.999 of its start day and open a
        new one for the same project starting now (not at midnight).
        """
        session = self.current
        if session is None:
            return None

        boundary = end_of_day(session.start_time)

        if session.is_active and self._is_active(now) and session.last_active_time < boundary:
            self._credit(session, boundary)

        session.end_time = boundary
        session.is_active = False
        self._recalculate(session.project_path)

        logger.info(
            "Session split at midnight for %s (%s, ended %s)",
            session.project_name,
            format_detailed_time(session.total_time),
            boundary.isoformat(),
        )

        new_session = TimeSession(
            id=self._new_session_id(),
            project_name=session.project_name,
            project_path=session.project_path,
            start_time=now,
            last_activity=now,
            last_active_time=now,
        )
        self.data.current = NO_SESSION
        self._add_session_to_project(new_session)
        self.data.current = OpenSession(new_session)

        self._persist(self.data)
        logger.info("New session started for %s at %s", new_session.project_name, now.isoformat())
        return new_session

    def reset(self) -> bool:
        """Throw away the open session without recording any of its time."""
        session = self.current
        if session is None:
            return False

        project = self.data.projects.get(session.project_path)
        if project is not None:
            project.sessions = [s for s in project.sessions if s.id != session.id]

        self.data.current = NO_SESSION
        self.paused_by_sleep = False
        self._recalculate(session.project_path)

        logger.info("Current session reset for %s", session.project_name)
        self._persist(self.data)
        return True

    # ---------- internals ----------

    def _credit(self, session: TimeSession, until: datetime) -> int:
        # deltas above the idle threshold cannot be active time: clock jump
        credited = safe_time_difference(until, session.last_active_time, self.config.idle_threshold)
        if credited == 0 and elapsed_ms(until, session.last_active_time) != 0:
            logger.warning(
                "Invalid time difference detected, skipping time addition (last active %s, now %s)",
                session.last_active_time.isoformat(),
                until.isoformat(),
            )
            return 0
        session.total_time += credited
        if until > session.last_active_time:
            session.last_active_time = until
        return credited

    def _touch(self, session: TimeSession, at: datetime) -> None:
        gap = at - session.last_active_time
        if session.is_active and timedelta(0) < gap <= ACTIVITY_GRACE and self._is_active(at):
            self._credit(session, at)
        self._mark(session, at)

    def _mark(self, session: TimeSession, at: datetime) -> None:
        # timestamps only move forward, late or reordered signals included
        if at > session.last_active_time:
            session.last_active_time = at
        if at > session.last_activity:
            session.last_activity = at
        if at > self.data.last_activity:
            self.data.last_activity = at

    def _find_recent_open_session(self, project_path: str) -> Optional[TimeSession]:
        project = self.data.projects.get(project_path)
        if project is None:
            return None
        open_sessions = [s for s in project.sessions if s.is_open]
        if not open_sessions:
            return None
        return max(open_sessions, key=lambda s: s.last_activity)

    def _close_stale(self, session: TimeSession) -> None:
        session.end_time = max(session.last_activity, session.start_time)
        session.is_active = False
        self._recalculate(session.project_path)

    def _add_session_to_project(self, session: TimeSession) -> None:
        project = self.data.projects.get(session.project_path)
        if project is None:
            project = ProjectStats(
                project_name=session.project_name,
                project_path=session.project_path,
                first_session=session.start_time,
                last_activity=session.start_time,
            )
            self.data.projects[session.project_path] = project

        project.sessions.append(session)
        self._recalculate(session.project_path)

    def _recalculate(self, project_path: str) -> None:
        project = self.data.projects.get(project_path)
        if project is not None:
            recalculate_project_stats(project)
        recalculate_totals(self.data)
