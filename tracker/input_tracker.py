# tracker/input_tracker.py

from __future__ import annotations

from datetime import datetime, timedelta
import logging
import threading
from typing import Callable, Optional

from pynput import keyboard, mouse

from tracker.signals import ActivitySignal, SignalKind

logger = logging.getLogger(__name__)

# mouse moves fire hundreds of times per second
MOVE_THROTTLE = timedelta(seconds=1)


class InputActivityTracker:
    """
    Turns global input events into editor activity signals:
    - key presses -> TEXT_CHANGE
    - mouse moves, clicks, scroll -> CURSOR_CHANGE

    Events are only forwarded while the editor window has focus.
    pynput calls us on its own threads, so we only post into the queue here.
    """

    def __init__(
        self,
        post: Callable[[ActivitySignal], None],
        is_editor_focused: Callable[[], bool],
        clock: Callable[[], datetime] = datetime.now,
        move_throttle: timedelta = MOVE_THROTTLE,
    ):
        self.post = post
        self.is_editor_focused = is_editor_focused
        self.clock = clock
        self.move_throttle = move_throttle

        self.lock = threading.Lock()
        self._last_move: Optional[datetime] = None

        self.keyboard_listener: Optional[keyboard.Listener] = None
        self.mouse_listener: Optional[mouse.Listener] = None

    def _emit(self, kind: SignalKind) -> None:
        if not self.is_editor_focused():
            return
        self.post(ActivitySignal(kind, self.clock()))

    def on_key(self, *args, **kwargs) -> None:
        self._emit(SignalKind.TEXT_CHANGE)

    def on_move(self, *args, **kwargs) -> None:
        now = self.clock()
        with self.lock:
            if self._last_move is not None and now - self._last_move < self.move_throttle:
                return
            self._last_move = now
        self._emit(SignalKind.CURSOR_CHANGE)

    def on_click(self, *args, **kwargs) -> None:
        self._emit(SignalKind.CURSOR_CHANGE)

    def on_scroll(self, *args, **kwargs) -> None:
        self._emit(SignalKind.CURSOR_CHANGE)

    def start(self) -> None:
        self.keyboard_listener = keyboard.Listener(on_press=self.on_key)
        self.mouse_listener = mouse.Listener(
            on_move=self.on_move,
            on_click=self.on_click,
            on_scroll=self.on_scroll,
        )
        self.keyboard_listener.start()
        self.mouse_listener.start()
        logger.info("Input listeners started")

    def stop(self) -> None:
        if self.keyboard_listener is not None:
            self.keyboard_listener.stop()
            self.keyboard_listener = None
        if self.mouse_listener is not None:
            self.mouse_listener.stop()
            self.mouse_listener = None
        logger.info("Input listeners stopped")
