# tracker/active_window.py

from __future__ import annotations

from datetime import datetime
import logging
import platform
import threading
from typing import Callable, Iterable, Optional, Tuple

import psutil

from tracker.signals import ActivitySignal, SignalKind

logger = logging.getLogger(__name__)

_SYSTEM = platform.system()

# WinAPI gives us the owning process on Windows
if _SYSTEM == "Windows":
    try:
        import win32gui
        import win32process
    except ImportError:
        win32gui = None
        win32process = None
else:
    win32gui = None
    win32process = None

# pygetwindow only knows titles, used where WinAPI is missing;
# it refuses to import at all on Linux
try:
    import pygetwindow as gw
except (ImportError, NotImplementedError):
    gw = None

WINDOW_DETECTION_AVAILABLE = win32gui is not None or gw is not None

# matched against the title when the process name is unknown
EDITOR_TITLE_MARKERS = ("visual studio code", "cursor")


def _get_active_window_windows() -> Tuple[Optional[str], Optional[str]]:
    """
    HWND of the foreground window -> PID -> process name via psutil.
    """
    if win32gui is None or win32process is None:
        return None, None

    try:
        hwnd = win32gui.GetForegroundWindow()
    except Exception:
        return None, None

    if not hwnd:
        return None, None

    try:
        title = win32gui.GetWindowText(hwnd) or ""
    except Exception:
        title = ""

    app_name = None
    try:
        _tid, pid = win32process.GetWindowThreadProcessId(hwnd)
        app_name = psutil.Process(pid).name()
    except (psutil.Error, OSError, ValueError) as e:
        logger.debug("Cannot resolve process of foreground window: %s", e)

    return app_name, title


def _get_active_window_fallback() -> Tuple[Optional[str], Optional[str]]:
    if gw is None:
        return None, None

    try:
        win = gw.getActiveWindow()
    except Exception:
        return None, None

    if win is None:
        return None, None

    # only the title is reliable here
    title = getattr(win, "title", "") or ""
    return None, title


def get_active_window() -> Tuple[Optional[str], Optional[str]]:
    """
    Returns (app_name, window_title) of the foreground window.

    app_name is the process name ('Code.exe', 'cursor') or None when unknown.
    """
    if _SYSTEM == "Windows":
        app, title = _get_active_window_windows()
        if app is not None or title:
            return app, title

    return _get_active_window_fallback()


def is_editor_window(app: Optional[str], title: Optional[str], editor_apps: Iterable[str]) -> bool:
    if app:
        return app.lower() in {a.lower() for a in editor_apps}
    if title:
        lowered = title.lower()
        return any(marker in lowered for marker in EDITOR_TITLE_MARKERS)
    return False


class FocusWatcher:
    """
    Polls the foreground window and posts FOCUS_GAINED / FOCUS_LOST
    whenever the editor's focus changes.

    Without any way to see the foreground window the editor is assumed
    to be focused, so input still counts.
    """

    def __init__(
        self,
        editor_apps: Iterable[str],
        post: Callable[[ActivitySignal], None],
        get_window: Callable[[], Tuple[Optional[str], Optional[str]]] = get_active_window,
        clock: Callable[[], datetime] = datetime.now,
        assume_focused: bool = not WINDOW_DETECTION_AVAILABLE,
    ):
        self.editor_apps = list(editor_apps)
        self.assume_focused = assume_focused
        self.post = post
        self.get_window = get_window
        self.clock = clock
        self._lock = threading.Lock()
        self._focused: Optional[bool] = None

    @property
    def is_focused(self) -> bool:
        with self._lock:
            return bool(self._focused)

    def set_editor_apps(self, editor_apps: Iterable[str]) -> None:
        self.editor_apps = list(editor_apps)

    def poll(self) -> bool:
        if self.assume_focused:
            app, title = None, None
            focused = True
        else:
            app, title = self.get_window()
            focused = is_editor_window(app, title, self.editor_apps)

        with self._lock:
            changed = focused != self._focused
            self._focused = focused

        if changed:
            kind = SignalKind.FOCUS_GAINED if focused else SignalKind.FOCUS_LOST
            logger.debug("Editor focus changed: %s (%s / %s)", kind.value, app, title)
            self.post(ActivitySignal(kind, self.clock(), {"app": app, "title": title}))

        return focused
