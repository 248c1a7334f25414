"""Best-effort system load sampling from the kernel load average."""

from __future__ import annotations

import logging
import math
import os
from typing import Callable, Optional

from shell_history.config import DEFAULT_LOADAVG_PATH

logger = logging.getLogger(__name__)


def available_cpu_count() -> int:
    """Logical CPUs this process may run on, 0 if unknown."""
    if hasattr(os, "sched_getaffinity"):
        try:
            return len(os.sched_getaffinity(0))
        except OSError:
            pass
    return os.cpu_count() or 0


class LoadSampler:
    """
    Reads the 1-minute load average as a percentage of available CPUs.

    ``sample()`` returns None ("unknown") when the load source cannot be
    read or parsed, or no CPUs are reported. Platforms without
    /proc/loadavg always get None, so throttling is a no-op there.

    The read is synchronous; /proc/loadavg is a kernel-backed pseudo-file
    and never blocks on disk.
    """

    def __init__(
        self,
        loadavg_path: str = DEFAULT_LOADAVG_PATH,
        cpu_count: Optional[Callable[[], int]] = None,
    ) -> None:
        self._loadavg_path = loadavg_path
        self._cpu_count = cpu_count or available_cpu_count

    def read_load_1m(self) -> Optional[float]:
        try:
            with open(self._loadavg_path, "r", encoding="utf-8") as f:
                raw = f.read()
        except OSError as e:
            logger.debug(f"Load average unavailable ({self._loadavg_path}): {e}")
            return None

        fields = raw.split()
        if not fields:
            return None
        try:
            load = float(fields[0])
        except ValueError:
            return None
        if not math.isfinite(load):
            return None
        return load

    def sample(self) -> Optional[float]:
        load = self.read_load_1m()
        if load is None:
            return None
        cpus = self._cpu_count()
        if not cpus:
            return None
        return load / cpus * 100

    __call__ = sample
