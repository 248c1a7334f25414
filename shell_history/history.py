"""
Session History Log

Append-only, human-readable per-session command logs.

Each session gets one file, <history_dir>/<sanitized-session-id>.log,
holding command entries followed by their output blocks:

    [2026-01-01T00:00:00.000Z] (/repo) $ npm run build
    <output>

Helpers here raise on I/O failure. Callers that must never fail (the
interceptor hooks) catch at their own boundary.
"""

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)

NO_OUTPUT = "(no output)"
TRUNCATION_SUFFIX = "... (truncated)"

_UNSAFE_SESSION_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def sanitize_session_id(session_id: str) -> str:
    """Replace every character outside [A-Za-z0-9_-] with an underscore.

    Distinct ids can collapse to the same name ("a/b" and "a_b"); their
    logs are then shared.
    """
    return _UNSAFE_SESSION_CHARS.sub("_", session_id)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a Z suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = moment.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def format_command_entry(
    command: str,
    workdir: Optional[str],
    timestamp: datetime,
) -> str:
    """Format the line logged before a command runs."""
    ts = f"[{format_timestamp(timestamp)}]"
    if workdir:
        return f"{ts} ({workdir}) $ {command}\n"
    return f"{ts} $ {command}\n"


def format_output_entry(output: Any, max_length: int = 10_000) -> str:
    """
    Format the block logged after a command runs.

    Args:
        output: Captured output. None, empty and whitespace-only output
                is logged as "(no output)"; other non-string values are
                converted with str().
        max_length: Characters kept before the truncation marker

    Returns:
        Output block terminated by a blank line
    """
    if output is None:
        return f"{NO_OUTPUT}\n\n"
    text = output if isinstance(output, str) else str(output)
    if not text.strip():
        return f"{NO_OUTPUT}\n\n"

    if len(text) > max_length:
        text = text[:max_length] + TRUNCATION_SUFFIX

    return f"{text}\n\n"


class HistoryLog:
    """
    Writer for the per-session history directory.

    Only ever creates the directory and appends to files inside it.
    Nothing here truncates, rotates or deletes a log.
    """

    def __init__(self, root: Union[str, Path]):
        self._root = Path(root).expanduser()

    @property
    def root(self) -> Path:
        """History directory."""
        return self._root

    def path_for(self, session_id: str) -> Path:
        """Log file path for a session."""
        return self._root / f"{sanitize_session_id(session_id)}.log"

    def ensure_dir(self) -> None:
        """Create the history directory and its parents if missing."""
        self._root.mkdir(parents=True, exist_ok=True)

    def append(self, session_id: str, entry: str) -> Path:
        """
        Append an entry to a session's log.

        Returns:
            Path of the log file written
        """
        self.ensure_dir()
        path = self.path_for(session_id)
        data = entry.encode("utf-8", errors="replace")
        # Single unbuffered write so one entry is never split between appends
        with open(path, "ab", buffering=0) as f:
            f.write(data)
        logger.debug(f"Appended {len(data)} bytes to {path}")
        return path

    def read(self, session_id: str) -> str:
        """Read a session's log, or "" if nothing has been logged yet."""
        path = self.path_for(session_id)
        if not path.exists():
            return ""
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            return f.read()
