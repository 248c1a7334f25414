"""
Shell History Configuration

Configuration classes for the shell history interceptor.

Everything is resolved once at construction time and handed to the
interceptor. Hooks never read the environment themselves.
"""

import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

MAX_LOAD_ENV = "OPENCODE_MAX_LOAD"

DEFAULT_HISTORY_DIR = "~/.tmp/history"
DEFAULT_MAX_OUTPUT_LENGTH = 10_000
DEFAULT_MAX_LOAD_PERCENT = 82.0
DEFAULT_POLL_INTERVAL_SECONDS = 5.0
DEFAULT_MAX_WAIT_SECONDS = 300.0
DEFAULT_LOADAVG_PATH = "/proc/loadavg"


def _default_blocked_commands() -> Dict[str, str]:
    return {
        "go test": "Use 'make test' instead.",
    }


def parse_max_load(value: Optional[str]) -> Optional[float]:
    """
    Parse a load threshold override.

    Args:
        value: Raw string, usually from the environment

    Returns:
        The threshold as a float, or None if the value is missing,
        non-numeric, non-finite or outside (0, 100]
    """
    if value is None:
        return None
    try:
        parsed = float(value.strip())
    except (TypeError, ValueError):
        return None
    if not math.isfinite(parsed):
        return None
    if parsed <= 0 or parsed > 100:
        return None
    return parsed


@dataclass
class LoadThrottleConfig:
    """Load-based admission control configuration."""

    enabled: bool = True
    max_load_percent: float = DEFAULT_MAX_LOAD_PERCENT
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    max_wait_seconds: float = DEFAULT_MAX_WAIT_SECONDS
    loadavg_path: str = DEFAULT_LOADAVG_PATH


@dataclass
class ShellHistoryConfig:
    """
    Complete configuration for the shell history interceptor.

    Defaults reproduce the stock plugin: logs under ~/.tmp/history,
    10,000 character output cap, only the bash tool is intercepted and
    `go test` is blocked in favour of `make test`.
    """

    history_dir: str = DEFAULT_HISTORY_DIR
    max_output_length: int = DEFAULT_MAX_OUTPUT_LENGTH
    tool_names: List[str] = field(default_factory=lambda: ["bash"])
    blocked_commands: Dict[str, str] = field(default_factory=_default_blocked_commands)
    load: LoadThrottleConfig = field(default_factory=LoadThrottleConfig)

    @property
    def history_path(self) -> Path:
        """History directory with ~ expanded."""
        return Path(os.path.expanduser(self.history_dir))

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ShellHistoryConfig":
        """
        Create config from defaults plus environment overrides.

        Only OPENCODE_MAX_LOAD is honoured. Malformed values are ignored.
        """
        env = os.environ if environ is None else environ
        config = cls()
        max_load = parse_max_load(env.get(MAX_LOAD_ENV))
        if max_load is not None:
            config.load.max_load_percent = max_load
        return config

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShellHistoryConfig":
        """Create config from dictionary."""
        config = cls()

        if "history_dir" in data:
            config.history_dir = data["history_dir"]
        if "max_output_length" in data:
            config.max_output_length = int(data["max_output_length"])
        if "tool_names" in data:
            config.tool_names = list(data["tool_names"])
        if "blocked_commands" in data:
            config.blocked_commands = dict(data["blocked_commands"])

        # Load throttle
        if "load" in data:
            load_data = data["load"]
            if isinstance(load_data, dict):
                max_load = load_data.get("max_load_percent", DEFAULT_MAX_LOAD_PERCENT)
                if parse_max_load(str(max_load)) is None:
                    max_load = DEFAULT_MAX_LOAD_PERCENT
                config.load = LoadThrottleConfig(
                    enabled=load_data.get("enabled", True),
                    max_load_percent=float(max_load),
                    poll_interval_seconds=float(load_data.get(
                        "poll_interval_seconds", DEFAULT_POLL_INTERVAL_SECONDS
                    )),
                    max_wait_seconds=float(
                        load_data.get("max_wait_seconds", DEFAULT_MAX_WAIT_SECONDS)
                    ),
                    loadavg_path=load_data.get("loadavg_path", DEFAULT_LOADAVG_PATH),
                )
            elif isinstance(load_data, bool):
                config.load = LoadThrottleConfig(enabled=load_data)

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "history_dir": self.history_dir,
            "max_output_length": self.max_output_length,
            "tool_names": list(self.tool_names),
            "blocked_commands": dict(self.blocked_commands),
            "load": {
                "enabled": self.load.enabled,
                "max_load_percent": self.load.max_load_percent,
                "poll_interval_seconds": self.load.poll_interval_seconds,
                "max_wait_seconds": self.load.max_wait_seconds,
                "loadavg_path": self.load.loadavg_path,
            },
        }
