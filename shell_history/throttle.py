"""
Load gate for shell command admission.

Pauses a command while the machine is overloaded, polling the load
sampler at a fixed interval. The wait is bounded: once max_wait_seconds
have been spent sleeping the command is admitted regardless of load.
An unknown load reading admits immediately.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from shell_history.config import LoadThrottleConfig
from shell_history.load import LoadSampler

logger = logging.getLogger(__name__)

LoadSource = Callable[[], Optional[float]]
Sleeper = Callable[[float], Awaitable[None]]
Clock = Callable[[], float]


@dataclass
class LoadWaitResult:
    """Outcome of a single admission wait."""

    load: Optional[float] = None
    polls: int = 0
    waited_seconds: float = 0.0
    timed_out: bool = False


class LoadGate:
    """Cooperative, bounded wait for system load to drop below a threshold.

    Args:
        sample: Returns load percent, or None when unknown
        max_load_percent: Admit when load is at or below this value
        poll_interval_seconds: Delay between samples
        max_wait_seconds: Upper bound on total time spent sleeping
        enabled: When False, wait() returns immediately without sampling
        sleep: Awaitable sleep; asyncio.sleep by default
        clock: Monotonic clock in seconds; time.monotonic by default
    """

    def __init__(
        self,
        sample: LoadSource,
        max_load_percent: float = 82.0,
        poll_interval_seconds: float = 5.0,
        max_wait_seconds: float = 300.0,
        enabled: bool = True,
        sleep: Optional[Sleeper] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._sample = sample
        self._max_load_percent = max_load_percent
        self._poll_interval_seconds = poll_interval_seconds
        self._max_wait_seconds = max_wait_seconds
        self._enabled = enabled
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or time.monotonic

    @classmethod
    def from_config(
        cls,
        config: LoadThrottleConfig,
        sample: Optional[LoadSource] = None,
        sleep: Optional[Sleeper] = None,
        clock: Optional[Clock] = None,
    ) -> "LoadGate":
        return cls(
            sample=sample or LoadSampler(loadavg_path=config.loadavg_path),
            max_load_percent=config.max_load_percent,
            poll_interval_seconds=config.poll_interval_seconds,
            max_wait_seconds=config.max_wait_seconds,
            enabled=config.enabled,
            sleep=sleep,
            clock=clock,
        )

    @property
    def max_load_percent(self) -> float:
        return self._max_load_percent

    @property
    def max_wait_seconds(self) -> float:
        return self._max_wait_seconds

    @property
    def poll_interval_seconds(self) -> float:
        return self._poll_interval_seconds

    def _over_threshold(self, load: Optional[float]) -> bool:
        return load is not None and load > self._max_load_percent

    async def wait(self) -> LoadWaitResult:
        """Block cooperatively until load is acceptable or the deadline passes."""
        if not self._enabled:
            return LoadWaitResult()

        load = self._sample()
        if not self._over_threshold(load):
            return LoadWaitResult(load=load)

        logger.info(
            f"System load {load:.1f}% above {self._max_load_percent:.1f}%, "
            f"pausing command for up to {self._max_wait_seconds:.0f}s"
        )
        started = self._clock()
        deadline = started + self._max_wait_seconds
        polls = 0
        timed_out = False

        while self._over_threshold(load):
            remaining = deadline - self._clock()
            if remaining <= 0:
                timed_out = True
                break
            await self._sleep(min(self._poll_interval_seconds, remaining))
            polls += 1
            load = self._sample()

        waited = self._clock() - started
        if timed_out:
            logger.warning(
                f"System load still {load:.1f}% after {waited:.0f}s, admitting command anyway"
            )
        else:
            logger.debug(f"Load gate released after {polls} polls ({waited:.1f}s)")
        return LoadWaitResult(load=load, polls=polls, waited_seconds=waited, timed_out=timed_out)
