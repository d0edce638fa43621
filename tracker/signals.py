# tracker/signals.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
import queue
from typing import Any, Optional


class SignalKind(str, Enum):
    TEXT_CHANGE = "text_change"
    CURSOR_CHANGE = "cursor_change"
    FOCUS_GAINED = "window_focus"
    FOCUS_LOST = "window_blur"
    SLEEP = "sleep"
    WAKE = "wake"


# signals that count as the user (or an agent) touching the editor
ACTIVITY_KINDS = (SignalKind.TEXT_CHANGE, SignalKind.CURSOR_CHANGE)
FOCUS_KINDS = (SignalKind.FOCUS_GAINED, SignalKind.FOCUS_LOST)


@dataclass(frozen=True)
class ActivitySignal:
    kind: SignalKind
    timestamp: datetime
    data: Optional[dict[str, Any]] = None


class SignalQueue:
    """
    Inbox between host threads (pynput listeners, window polling)
    and the single thread that owns the tracker.

    Emission order is preserved; drain() is called once per loop iteration.
    """

    def __init__(self):
        self._queue: queue.Queue[ActivitySignal] = queue.Queue()

    def post(self, signal: ActivitySignal) -> None:
        self._queue.put(signal)

    def drain(self) -> list[ActivitySignal]:
        signals: list[ActivitySignal] = []
        while True:
            try:
                signals.append(self._queue.get_nowait())
            except queue.Empty:
                break
        return signals
