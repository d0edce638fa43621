# config.py

from __future__ import annotations

from dataclasses import dataclass, asdict, field
from pathlib import Path
import json
import sys
from typing import Any

# -------------------------------------------------
# BASE DIRECTORY FOR CONFIG.JSON AND TRACKING DATA
# -------------------------------------------------
# - frozen .exe (PyInstaller onefile): next to the exe
# - from sources: the folder holding config.py

if getattr(sys, "frozen", False):
    BASE_DIR = Path(sys.executable).resolve().parent
else:
    BASE_DIR = Path(__file__).resolve().parent

CONFIG_PATH = BASE_DIR / "config.json"
DATA_DIR_DEFAULT = BASE_DIR / "data"
LOG_PATH_DEFAULT = BASE_DIR / "codeclock.log"

# (min, max) for the numeric options; out-of-range values are clamped
RANGES: dict[str, tuple[int, int]] = {
    "idle_threshold": (1, 60),
    "save_interval": (10, 300),
    "auto_end_idle_threshold": (5, 240),
}

# names used by the editor settings UI
ALIASES: dict[str, str] = {
    "idle_threshold": "idleThreshold",
    "auto_start": "autoStart",
    "show_in_status_bar": "showInStatusBar",
    "save_interval": "saveInterval",
    "track_background": "trackBackground",
    "auto_end_session_after_idle": "autoEndSessionAfterIdle",
    "auto_end_idle_threshold": "autoEndIdleThreshold",
    "auto_end_session_on_project_change": "autoEndSessionOnProjectChange",
}


@dataclass
class Config:
    # tracking (minutes unless stated otherwise)
    idle_threshold: int = 5
    auto_start: bool = True
    show_in_status_bar: bool = True
    save_interval: int = 30  # seconds
    track_background: bool = True
    auto_end_session_after_idle: bool = True
    auto_end_idle_threshold: int = 30
    auto_end_session_on_project_change: bool = True

    # process names that count as "the editor window"
    editor_apps: list[str] = field(default_factory=lambda: ["code.exe", "code", "cursor.exe", "cursor"])

    # workspace folders, the first one is the tracked project
    workspace_folders: list[str] = field(default_factory=list)

    # where the per-workspace JSON files and the log live
    data_dir: str = str(DATA_DIR_DEFAULT)
    log_path: str = str(LOG_PATH_DEFAULT)

    # "system" / "light" / "dark"
    theme: str = "dark"

    notify_on_error: bool = True

    def normalized(self) -> "Config":
        """Clamp numeric options into their allowed ranges."""
        for name, (lo, hi) in RANGES.items():
            setattr(self, name, clamp(getattr(self, name), lo, hi))
        self.editor_apps = [app.lower() for app in self.editor_apps if app]
        return self


def clamp(value: Any, lo: int, hi: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        number = lo
    return max(lo, min(hi, number))


def _get(raw: dict, name: str, default: Any) -> Any:
    if name in raw:
        return raw[name]
    alias = ALIASES.get(name)
    if alias and alias in raw:
        return raw[alias]
    return default


def _get_bool(raw: dict, name: str, default: bool) -> bool:
    # only real JSON booleans count, "false" must not turn into True
    value = _get(raw, name, default)
    return value if isinstance(value, bool) else default


def config_from_dict(raw: dict) -> Config:
    defaults = Config()
    return Config(
        idle_threshold=_get(raw, "idle_threshold", defaults.idle_threshold),
        auto_start=_get_bool(raw, "auto_start", defaults.auto_start),
        show_in_status_bar=_get_bool(raw, "show_in_status_bar", defaults.show_in_status_bar),
        save_interval=_get(raw, "save_interval", defaults.save_interval),
        track_background=_get_bool(raw, "track_background", defaults.track_background),
        auto_end_session_after_idle=_get_bool(
            raw, "auto_end_session_after_idle", defaults.auto_end_session_after_idle
        ),
        auto_end_idle_threshold=_get(raw, "auto_end_idle_threshold", defaults.auto_end_idle_threshold),
        auto_end_session_on_project_change=_get_bool(
            raw, "auto_end_session_on_project_change", defaults.auto_end_session_on_project_change
        ),
        editor_apps=list(raw.get("editor_apps", defaults.editor_apps)),
        workspace_folders=list(raw.get("workspace_folders", [])),
        data_dir=raw.get("data_dir", defaults.data_dir),
        log_path=raw.get("log_path", defaults.log_path),
        theme=raw.get("theme", defaults.theme),
        notify_on_error=_get_bool(raw, "notify_on_error", defaults.notify_on_error),
    ).normalized()


def load_config(path: Path = CONFIG_PATH) -> Config:
    if path.exists():
        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
        return config_from_dict(raw)

    # first run: write the defaults so they can be edited
    cfg = Config()
    save_config(cfg, path)
    return cfg


def save_config(cfg: Config, path: Path = CONFIG_PATH) -> None:
    with path.open("w", encoding="utf-8") as f:
        json.dump(asdict(cfg), f, ensure_ascii=False, indent=2)
