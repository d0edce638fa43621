# tracker/classifier.py

from datetime import datetime
from enum import Enum

SLEEP_GAP_THRESHOLD_MS = 30_000


class ActivityState(str, Enum):
    ACTIVE_FOREGROUND = "active_foreground"   # editor focused, user working
    ACTIVE_BACKGROUND = "active_background"   # editor in background, files still changing
    IDLE_FOREGROUND = "idle_foreground"       # editor focused, nobody touching it
    INACTIVE = "inactive"


def _ms(delta) -> float:
    return delta.total_seconds() * 1000.0


def classify(
    now: datetime,
    last_activity: datetime,
    last_heartbeat: datetime,
    window_focused: bool,
    idle_threshold_minutes: float,
    track_background: bool,
    sleep_gap_threshold_ms: float = SLEEP_GAP_THRESHOLD_MS,
) -> ActivityState:
    """
    Decide the activity state from timestamps alone.

    A heartbeat gap larger than sleep_gap_threshold_ms means the process
    itself was suspended (laptop sleep), so it counts as idle even if the
    last recorded activity looks recent.
    """
    idle_gap = _ms(now - last_activity)
    heartbeat_gap = _ms(now - last_heartbeat)

    sleep_detected = heartbeat_gap > sleep_gap_threshold_ms
    is_idle = idle_gap > idle_threshold_minutes * 60_000 or sleep_detected

    if window_focused:
        return ActivityState.IDLE_FOREGROUND if is_idle else ActivityState.ACTIVE_FOREGROUND

    if track_background and not is_idle and not sleep_detected:
        return ActivityState.ACTIVE_BACKGROUND

    return ActivityState.INACTIVE


def is_active_state(state: ActivityState) -> bool:
    return state in (ActivityState.ACTIVE_FOREGROUND, ActivityState.ACTIVE_BACKGROUND)
