"""
Pytest Configuration and Shared Fixtures

Provides fixtures and fakes for testing shell_history components.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional

import pytest

from shell_history.config import LoadThrottleConfig, ShellHistoryConfig
from shell_history.history import HistoryLog
from shell_history.interceptor import ShellHistoryInterceptor
from shell_history.throttle import LoadGate


class FakeClock:
    """Monotonic clock whose sleep() advances time instantly."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class SequenceSampler:
    """Load sampler returning scripted readings; the last one repeats."""

    def __init__(self, readings: Iterable[Optional[float]]):
        self.readings = list(readings)
        self.calls = 0

    def __call__(self) -> Optional[float]:
        index = min(self.calls, len(self.readings) - 1)
        self.calls += 1
        return self.readings[index]


FIXED_NOW = datetime(2026, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def fake_clock() -> FakeClock:
    """Create a fresh fake clock."""
    return FakeClock()


@pytest.fixture
def history_dir(tmp_path: Path) -> Path:
    """History directory that does not exist yet."""
    return tmp_path / "home" / ".tmp" / "history"


@pytest.fixture
def config(history_dir: Path) -> ShellHistoryConfig:
    """Default config pointed at a temporary history directory."""
    return ShellHistoryConfig(history_dir=str(history_dir))


@pytest.fixture
def idle_gate(fake_clock: FakeClock) -> LoadGate:
    """Gate that always sees an idle machine."""
    return LoadGate(
        sample=SequenceSampler([10.0]),
        sleep=fake_clock.sleep,
        clock=fake_clock,
    )


@pytest.fixture
def interceptor(config: ShellHistoryConfig, idle_gate: LoadGate) -> ShellHistoryInterceptor:
    """Interceptor with an idle gate and a frozen clock."""
    return ShellHistoryInterceptor(
        config=config,
        gate=idle_gate,
        now=lambda: FIXED_NOW,
    )


@pytest.fixture
def history(history_dir: Path) -> HistoryLog:
    """History writer on a temporary directory."""
    return HistoryLog(history_dir)


@pytest.fixture
def throttle_config() -> LoadThrottleConfig:
    """Throttle config with stock thresholds."""
    return LoadThrottleConfig()
