from datetime import timedelta

import pytest

from conftest import START
from tracker.classifier import ActivityState, classify, is_active_state


def state(idle=timedelta(0), heartbeat=timedelta(0), focused=True, background=True, threshold=5):
    return classify(
        now=START,
        last_activity=START - idle,
        last_heartbeat=START - heartbeat,
        window_focused=focused,
        idle_threshold_minutes=threshold,
        track_background=background,
    )


class TestClassify:
    def test_focused_and_recent(self):
        assert state(idle=timedelta(seconds=10)) == ActivityState.ACTIVE_FOREGROUND

    def test_focused_but_idle(self):
        assert state(idle=timedelta(minutes=6)) == ActivityState.IDLE_FOREGROUND

    def test_threshold_itself_is_still_active(self):
        assert state(idle=timedelta(minutes=5)) == ActivityState.ACTIVE_FOREGROUND

    def test_background_tracking(self):
        assert state(focused=False) == ActivityState.ACTIVE_BACKGROUND

    def test_background_not_tracked(self):
        assert state(focused=False, background=False) == ActivityState.INACTIVE

    def test_background_and_idle(self):
        assert state(focused=False, idle=timedelta(minutes=10)) == ActivityState.INACTIVE

    def test_heartbeat_gap_means_idle_even_with_recent_activity(self):
        assert state(heartbeat=timedelta(seconds=31)) == ActivityState.IDLE_FOREGROUND
        assert state(heartbeat=timedelta(seconds=31), focused=False) == ActivityState.INACTIVE

    def test_heartbeat_gap_at_threshold_is_not_sleep(self):
        assert state(heartbeat=timedelta(seconds=30)) == ActivityState.ACTIVE_FOREGROUND


@pytest.mark.parametrize(
    "activity_state, expected",
    [
        (ActivityState.ACTIVE_FOREGROUND, True),
        (ActivityState.ACTIVE_BACKGROUND, True),
        (ActivityState.IDLE_FOREGROUND, False),
        (ActivityState.INACTIVE, False),
    ],
)
def test_is_active_state(activity_state, expected):
    assert is_active_state(activity_state) is expected
