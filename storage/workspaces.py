# storage/workspaces.py

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
import json
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional

from storage.json_store import DATA_FILE_NAME
from storage.reports import session_time_in_range
from storage.serialization import tracking_data_from_dict
from tracker.models import ProjectStats, TrackingData
from tracker.time_utils import current_month_range, current_week_range, today_range

logger = logging.getLogger(__name__)

CACHE_DURATION = timedelta(seconds=30)


@dataclass
class WorkspaceEntry:
    name: str
    path: str
    data: TrackingData


@dataclass
class AggregatedData:
    all_projects: Dict[str, ProjectStats] = field(default_factory=dict)
    total_time: int = 0
    last_updated: Optional[datetime] = None
    workspaces: List[WorkspaceEntry] = field(default_factory=list)

    @property
    def workspace_count(self) -> int:
        return len(self.workspaces)

    def time_in_range(self, start: datetime, end: datetime) -> int:
        total = 0
        for workspace in self.workspaces:
            for _, session in workspace.data.all_sessions():
                total += session_time_in_range(session.start_time, session.total_time, start, end)
        return total

    def today_total(self, now: Optional[datetime] = None) -> int:
        return self.time_in_range(*today_range(now))

    def week_total(self, now: Optional[datetime] = None) -> int:
        return self.time_in_range(*current_week_range(now))

    def month_total(self, now: Optional[datetime] = None) -> int:
        return self.time_in_range(*current_month_range(now))


class WorkspaceAggregator:
    """
    Reads the data files of every workspace bucket under data_dir and
    merges them for the cross-workspace summary. Results are cached briefly.
    """

    def __init__(self, data_dir: Path, clock: Callable[[], datetime] = datetime.now):
        self.workspaces_dir = Path(data_dir) / "workspaces"
        self.clock = clock
        self._cached: Optional[AggregatedData] = None
        self._cached_at: Optional[datetime] = None

    def get(self) -> AggregatedData:
        now = self.clock()
        if self._cached is not None and self._cached_at is not None and now - self._cached_at < CACHE_DURATION:
            return self._cached

        aggregated = self._load_all(now)
        self._cached = aggregated
        self._cached_at = now

        logger.info(
            "Aggregated data loaded: %d workspaces, %d projects",
            aggregated.workspace_count,
            len(aggregated.all_projects),
        )
        return aggregated

    def refresh(self) -> AggregatedData:
        self._cached = None
        self._cached_at = None
        return self.get()

    def _load_all(self, now: datetime) -> AggregatedData:
        aggregated = AggregatedData(last_updated=now)

        if not self.workspaces_dir.is_dir():
            logger.debug("Workspaces directory does not exist yet")
            return aggregated

        for bucket in sorted(self.workspaces_dir.iterdir()):
            data_file = bucket / DATA_FILE_NAME
            if not data_file.is_file():
                continue
            try:
                with data_file.open("r", encoding="utf-8") as f:
                    data = tracking_data_from_dict(json.load(f), now=now)
            except (OSError, ValueError, KeyError, TypeError) as e:
                logger.warning("Failed to load workspace data from %s: %s", bucket.name, e)
                continue

            workspace_name = data.workspace_name or f"Workspace {bucket.name}"
            aggregated.workspaces.append(
                WorkspaceEntry(name=workspace_name, path=data.workspace_path or "Unknown", data=data)
            )

            for project_path, project in data.projects.items():
                key = f"{workspace_name}:{project_path}"
                aggregated.all_projects[key] = replace(
                    project, project_name=f"{project.project_name} ({workspace_name})"
                )
                aggregated.total_time += project.total_time

        return aggregated
