from datetime import datetime, timedelta

import pytest

from config import Config
from tracker.activity_monitor import ActivityMonitor
from tracker.models import NO_SESSION, ProjectContext, TrackingData
from tracker.session_machine import SessionStateMachine
from tracker.signals import ActivitySignal, SignalKind

START = datetime(2024, 3, 14, 10, 0, 0)

ALPHA = ProjectContext(name="alpha", path="/work/alpha")
BETA = ProjectContext(name="beta", path="/work/beta")


class FakeClock:
    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class Harness:
    """Monitor + machine driven by a fake clock, like the tracker's tick loop."""

    def __init__(self, config: Config, start: datetime = START, project=ALPHA):
        self.config = config
        self.clock = FakeClock(start)
        self.project = project
        self.saves = []
        self.data = TrackingData(last_activity=start, last_saved=start)
        self.monitor = ActivityMonitor(config, start)
        self._ids = iter(f"s{n}" for n in range(1, 1000))
        self.machine = SessionStateMachine(
            data=self.data,
            config=config,
            is_active=self.monitor.is_active,
            resolve_project=lambda: self.project,
            persist=self.saves.append,
            new_session_id=lambda: next(self._ids),
        )
        self.monitor.on_activity(self.machine.handle_signal)

    @property
    def current(self):
        return self.machine.current

    def signal(self, kind: SignalKind = SignalKind.TEXT_CHANGE, at: datetime = None):
        self.monitor.record(ActivitySignal(kind, at or self.clock.now))

    def tick(self):
        now = self.clock.now
        self.monitor.check_heartbeat(now)
        return self.machine.tick(now)

    def run(self, seconds: int):
        """Advance in 1-second ticks, returning the last outcome."""
        outcome = None
        for _ in range(seconds):
            self.clock.advance(seconds=1)
            outcome = self.tick()
        return outcome

    def sessions(self, project=None):
        project = project or self.project
        stats = self.data.projects.get(project.path)
        return stats.sessions if stats else []


@pytest.fixture
def config(tmp_path):
    return Config(
        idle_threshold=5,
        auto_start=True,
        save_interval=30,
        track_background=True,
        auto_end_session_after_idle=True,
        auto_end_idle_threshold=30,
        auto_end_session_on_project_change=True,
        workspace_folders=[],
        data_dir=str(tmp_path / "data"),
        log_path=str(tmp_path / "codeclock.log"),
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_harness(config):
    def factory(start: datetime = START, project=ALPHA, **overrides):
        for name, value in overrides.items():
            setattr(config, name, value)
        return Harness(config, start=start, project=project)

    return factory


@pytest.fixture
def empty_data():
    return TrackingData(last_activity=START, last_saved=START, current=NO_SESSION)
