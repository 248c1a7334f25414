"""
Shell History Interceptor

Gates and records shell commands run by an agent host:

- Before execution: reject blocklisted commands, wait out high system
  load, append "[ts] (workdir) $ command" to the session log.
- After execution: append the captured output (truncated) to the same log.

Only a blocklisted command ever fails a hook. Throttling and logging
problems are logged and dropped so a legitimate command always runs.

Usage:
    from shell_history import HookEngine, create_shell_history_hooks

    engine = HookEngine(hooks=create_shell_history_hooks())
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from shell_history.blocklist import Blocklist
from shell_history.config import ShellHistoryConfig
from shell_history.history import HistoryLog, format_command_entry, format_output_entry
from shell_history.hooks import (
    HookMatcher,
    PostToolUseEvent,
    PostToolUseFailureEvent,
    PreToolUseEvent,
)
from shell_history.throttle import LoadGate

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ShellHistoryInterceptor:
    """Command gate and output recorder for shell tool calls.

    Without an explicit config, settings come from ShellHistoryConfig.from_env()
    so OPENCODE_MAX_LOAD applies however the interceptor is built. Log
    appends run in a worker thread to keep the host's event loop free.
    """

    def __init__(
        self,
        config: Optional[ShellHistoryConfig] = None,
        gate: Optional[LoadGate] = None,
        history: Optional[HistoryLog] = None,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._config = config or ShellHistoryConfig.from_env()
        self._blocklist = Blocklist(self._config.blocked_commands)
        self._gate = gate or LoadGate.from_config(self._config.load)
        self._history = history or HistoryLog(self._config.history_path)
        self._now = now or _utc_now

    @property
    def config(self) -> ShellHistoryConfig:
        return self._config

    @property
    def history(self) -> HistoryLog:
        return self._history

    @property
    def gate(self) -> LoadGate:
        return self._gate

    def handles(self, tool_name: Optional[str]) -> bool:
        """Check if this interceptor applies to a tool kind."""
        return tool_name in self._config.tool_names

    async def on_before_execute(
        self,
        tool_name: str,
        args: Optional[Dict[str, Any]],
        session_id: Optional[str],
    ) -> None:
        """
        Gate a shell command before the host runs it.

        Args:
            tool_name: Tool kind, e.g. "bash"; other kinds are ignored
            args: Tool arguments; "command" and optional "workdir" are used
            session_id: Session whose log receives the command entry

        Raises:
            CommandBlockedError: The command contains a blocked substring
        """
        if not self.handles(tool_name):
            return

        args = args or {}
        command = args.get("command")
        self._blocklist.check(command)

        try:
            await self._gate.wait()

            if not command or not session_id:
                return
            entry = format_command_entry(command, args.get("workdir"), self._now())
            await asyncio.to_thread(self._history.append, session_id, entry)
        except Exception as e:
            logger.warning(f"Shell history pre-execute failed for session {session_id!r}: {e}")

    async def on_after_execute(
        self,
        tool_name: str,
        session_id: Optional[str],
        output: Any,
    ) -> None:
        """
        Record a command's captured output.

        Args:
            tool_name: Tool kind; non-shell kinds are ignored
            session_id: Session whose log receives the output; None is a no-op
            output: Captured output, possibly empty or None
        """
        try:
            if not self.handles(tool_name) or not session_id:
                return
            entry = format_output_entry(output, self._config.max_output_length)
            await asyncio.to_thread(self._history.append, session_id, entry)
        except Exception as e:
            logger.warning(f"Shell history post-execute failed for session {session_id!r}: {e}")

    async def on_execute_failure(
        self,
        tool_name: str,
        session_id: Optional[str],
        error: Optional[str],
    ) -> None:
        """Record the error text of a failed command as its output."""
        await self.on_after_execute(tool_name, session_id, error)

    # --- Host hook adapters ---

    async def _pre_tool_use(self, event: PreToolUseEvent) -> None:
        await self.on_before_execute(event.tool_name, event.tool_input, event.session_id)

    async def _post_tool_use(self, event: PostToolUseEvent) -> None:
        await self.on_after_execute(event.tool_name, event.session_id, event.tool_output)

    async def _post_tool_use_failure(self, event: PostToolUseFailureEvent) -> None:
        await self.on_execute_failure(event.tool_name, event.session_id, event.error)

    def as_hooks(self) -> Dict[str, List[HookMatcher]]:
        """Build HookEngine registrations for this interceptor."""
        tool_pattern = "|".join(re.escape(name) for name in self._config.tool_names) or None
        return {
            # No timeout: the load gate bounds its own wait, and an engine
            # timeout would turn a slow admission into a deny
            "pre_tool_use": [
                HookMatcher(matcher=tool_pattern, handler=self._pre_tool_use, timeout=None),
            ],
            "post_tool_use": [
                HookMatcher(matcher=tool_pattern, handler=self._post_tool_use),
            ],
            "post_tool_use_failure": [
                HookMatcher(matcher=tool_pattern, handler=self._post_tool_use_failure),
            ],
        }


def create_shell_history_hooks(
    config: Optional[ShellHistoryConfig] = None,
) -> Dict[str, List[HookMatcher]]:
    """Create hook registrations for a shell history interceptor.

    Args:
        config: Interceptor configuration. Defaults to ShellHistoryConfig.from_env().

    Returns:
        Mapping of event type to matchers, ready for HookEngine(hooks=...)
    """
    return ShellHistoryInterceptor(config).as_hooks()
