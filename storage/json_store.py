# storage/json_store.py

from __future__ import annotations

from datetime import datetime
import hashlib
import json
import logging
import os
from pathlib import Path
import shutil
import tempfile
from typing import Callable, Optional

from storage.serialization import tracking_data_from_dict, tracking_data_to_dict
from tracker.models import DATA_VERSION, TrackingData, normalize_project_path

logger = logging.getLogger(__name__)

DATA_FILE_NAME = "timeTrackingData.json"
BACKUP_FILE_NAME = "timeTrackingData.backup.json"


class StorageError(Exception):
    pass


def workspace_hash(workspace_path: str) -> str:
    digest = hashlib.sha1(normalize_project_path(workspace_path).encode("utf-8"))
    return digest.hexdigest()[:12]


def workspace_bucket(data_dir: Path, workspace_path: Optional[str]) -> Path:
    """Directory holding the data of one workspace (global/ without a workspace)."""
    if workspace_path:
        return Path(data_dir) / "workspaces" / workspace_hash(workspace_path)
    return Path(data_dir) / "global"


def _atomic_write_text(path: Path, text: str) -> None:
    # temp file in the same directory + os.replace, so readers never see half a file
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


class JsonTrackingStore:
    """
    Per-workspace JSON file with a rotating backup of the previous version.
    """

    def __init__(
        self,
        data_dir: Path,
        workspace_path: Optional[str] = None,
        workspace_name: Optional[str] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.workspace_path = normalize_project_path(workspace_path) if workspace_path else None
        self.workspace_name = workspace_name
        if self.workspace_path and not self.workspace_name:
            self.workspace_name = os.path.basename(self.workspace_path) or self.workspace_path
        self.clock = clock

        storage_dir = workspace_bucket(data_dir, self.workspace_path)
        self.data_path = storage_dir / DATA_FILE_NAME
        self.backup_path = storage_dir / BACKUP_FILE_NAME

        logger.debug(
            "Storage paths initialized: data=%s backup=%s workspace=%s",
            self.data_path,
            self.backup_path,
            self.workspace_name or "global",
        )

    # ---------- load ----------

    def load(self) -> TrackingData:
        if not self.exists():
            logger.info("No existing data file found, starting with empty data")
            return self.create_default_data()

        try:
            data = self._read(self.data_path)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error("Failed to load tracking data: %s", e)
            return self._load_backup()

        if self.workspace_path and data.workspace_path and not self._same_workspace(data.workspace_path):
            logger.warning(
                "Loaded data belongs to a different workspace (%s, current %s), ignoring it",
                data.workspace_name,
                self.workspace_name,
            )
            return self.create_default_data()

        if self.workspace_path and not data.workspace_path:
            data.workspace_path = self.workspace_path
            data.workspace_name = self.workspace_name

        logger.info(
            "Tracking data loaded: %d projects, open session=%s, workspace=%s",
            len(data.projects),
            data.current_session is not None,
            data.workspace_name or "unknown",
        )
        return data

    def _load_backup(self) -> TrackingData:
        try:
            data = self._read(self.backup_path)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error("Failed to load backup data: %s", e)
            return self.create_default_data()

        if self.workspace_path and data.workspace_path and not self._same_workspace(data.workspace_path):
            logger.warning("Backup belongs to a different workspace, ignoring it")
            return self.create_default_data()

        logger.warning("Loaded data from backup file")
        return data

    def _same_workspace(self, other_path: str) -> bool:
        return normalize_project_path(other_path) == self.workspace_path

    def _read(self, path: Path) -> TrackingData:
        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
        if not isinstance(raw, dict):
            raise ValueError(f"unexpected top-level JSON in {path.name}")
        return tracking_data_from_dict(raw, now=self.clock())

    # ---------- save ----------

    def save(self, data: TrackingData) -> None:
        try:
            if self.exists():
                self.backup()

            data.last_saved = self.clock()
            text = json.dumps(tracking_data_to_dict(data), ensure_ascii=False, indent=2)
            _atomic_write_text(self.data_path, text)
        except OSError as e:
            logger.error("Failed to save tracking data: %s", e)
            raise StorageError(f"could not save tracking data to {self.data_path}") from e

        logger.debug("Tracking data saved: %d projects, %d bytes", len(data.projects), len(text))

    def backup(self) -> None:
        # a failed backup must not block the save itself
        try:
            if self.exists():
                self.backup_path.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(self.data_path, self.backup_path)
                logger.debug("Backup created")
        except OSError as e:
            logger.error("Failed to create backup: %s", e)

    def exists(self) -> bool:
        return self.data_path.is_file()

    def clear(self) -> None:
        self.backup()
        try:
            if self.exists():
                self.data_path.unlink()
                logger.info("Tracking data cleared")
        except OSError as e:
            logger.error("Failed to clear tracking data: %s", e)
            raise StorageError(f"could not clear {self.data_path}") from e

    def create_default_data(self) -> TrackingData:
        now = self.clock()
        return TrackingData(
            last_activity=now,
            last_saved=now,
            version=DATA_VERSION,
            workspace_path=self.workspace_path,
            workspace_name=self.workspace_name,
        )


def store_for_config(config, clock: Callable[[], datetime] = datetime.now) -> JsonTrackingStore:
    """Store of the first configured workspace folder, the global bucket without one."""
    folders = [f for f in config.workspace_folders if f]
    if not folders:
        return JsonTrackingStore(Path(config.data_dir), clock=clock)

    workspace = folders[0]
    name = os.path.basename(os.path.abspath(os.path.expanduser(workspace)).rstrip("\\/")) or None
    return JsonTrackingStore(Path(config.data_dir), workspace_path=workspace, workspace_name=name, clock=clock)
