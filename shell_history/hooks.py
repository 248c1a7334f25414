"""
Shell History Hooks - Host plugin contract for tool execution.

The agent host runs the command; plugins only observe it or veto it.
This module models the two lifecycle phases the host exposes around
each tool call, plus the failure variant of the "after" phase.

Key concepts:
- PreToolUseEvent / PostToolUseEvent: what the host tells a plugin
- HookResult: allow/deny decision from a pre-tool hook
- HookMatcher: matches tool names via regex, dispatches to handler
- HookEngine: orchestrates hook execution with timeout support
- Pre-tool hooks can block a call (first deny wins)
- Post-tool hooks are informational (cannot change the output)

Usage:
    from shell_history.hooks import HookEngine
    from shell_history.interceptor import create_shell_history_hooks

    engine = HookEngine(hooks=create_shell_history_hooks())
    result = await engine.run_pre_tool_hooks(
        PreToolUseEvent(tool_name="bash", tool_input={"command": "ls"}, session_id="s1")
    )
    if result.decision == "deny":
        report(result.reason)
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Literal, Optional

logger = logging.getLogger(__name__)


# --- Hook Event Types ---

HookEvent = Literal[
    "pre_tool_use",
    "post_tool_use",
    "post_tool_use_failure",
]


class HookDeniedError(Exception):
    """Raised by a pre-tool handler to veto the tool call.

    The engine turns it into a deny HookResult whose reason is the
    exception message. Any other exception from a handler is logged and
    ignored.
    """

    pass


@dataclass
class PreToolUseEvent:
    """Event emitted before a tool is executed."""

    tool_name: str
    tool_input: Dict[str, Any]
    tool_call_id: str = ""
    session_id: str = ""


@dataclass
class PostToolUseEvent:
    """Event emitted after a tool executes successfully."""

    tool_name: str
    tool_input: Dict[str, Any]
    tool_output: Any = None
    tool_call_id: str = ""
    session_id: str = ""
    duration_ms: float = 0


@dataclass
class PostToolUseFailureEvent:
    """Event emitted when a tool execution fails."""

    tool_name: str
    tool_input: Dict[str, Any]
    error: str = ""
    tool_call_id: str = ""
    session_id: str = ""
    duration_ms: float = 0


# --- Hook Results ---


@dataclass
class HookResult:
    """Result from a control hook.

    Decisions:
    - "allow": Tool executes normally
    - "deny": Tool is blocked, reason is reported to the agent
    """

    decision: Literal["allow", "deny"] = "allow"
    reason: Optional[str] = None


# --- Hook Matcher ---


@dataclass
class HookMatcher:
    """Matches tool names via regex and dispatches to handler.

    Args:
        matcher: Regex pattern for tool names. None matches all tools.
                 Examples: "bash", "bash|shell", None
        handler: Callable (event) -> HookResult | None, sync or async.
                 Return None or HookResult(decision="allow") to allow.
        timeout: Max seconds to wait for an async handler. None waits
                 forever. Default 30s.
    """

    matcher: Optional[str] = None
    handler: Optional[Callable] = None
    timeout: Optional[float] = 30.0

    def matches(self, tool_name: str) -> bool:
        """Check if this matcher applies to the given tool name."""
        if self.matcher is None:
            return True
        try:
            return bool(re.fullmatch(self.matcher, tool_name))
        except re.error:
            logger.warning(f"Invalid hook matcher regex: {self.matcher}")
            return False


# --- Hook Engine ---


class HookEngine:
    """Orchestrates hook execution with matcher-based dispatch.

    Supports multiple matchers per event type. For pre-tool hooks,
    first deny wins: once a matcher denies, later matchers are skipped.

    Example:
        engine = HookEngine(hooks={
            "pre_tool_use": [
                HookMatcher(matcher="bash", handler=gate_commands, timeout=330.0),
            ],
            "post_tool_use": [
                HookMatcher(matcher="bash", handler=record_output),
            ],
        })
    """

    def __init__(
        self,
        hooks: Optional[Dict[str, List[HookMatcher]]] = None,
    ):
        self._hooks: Dict[str, List[HookMatcher]] = hooks or {}

    @property
    def hooks(self) -> Dict[str, List[HookMatcher]]:
        """Get registered hooks."""
        return self._hooks

    def has_hooks(self, event_type: str) -> bool:
        """Check if any hooks are registered for an event type."""
        return bool(self._hooks.get(event_type))

    async def run_pre_tool_hooks(self, event: PreToolUseEvent) -> HookResult:
        """Run pre-tool-use hooks. First deny wins.

        Returns:
            Deny result from the first denying matcher, otherwise allow.
        """
        for matcher in self._matching("pre_tool_use", event.tool_name):
            result = await self._invoke_handler(matcher, event)
            if result is not None and result.decision == "deny":
                return result

        return HookResult(decision="allow")

    async def run_post_tool_hooks(self, event: PostToolUseEvent) -> None:
        """Run post-tool-use hooks (informational, no return value)."""
        for matcher in self._matching("post_tool_use", event.tool_name):
            await self._invoke_handler(matcher, event)

    async def run_post_tool_failure_hooks(
        self, event: PostToolUseFailureEvent
    ) -> None:
        """Run post-tool-use-failure hooks (informational)."""
        for matcher in self._matching("post_tool_use_failure", event.tool_name):
            await self._invoke_handler(matcher, event)

    def _matching(self, event_type: str, tool_name: str) -> List[HookMatcher]:
        return [
            matcher
            for matcher in self._hooks.get(event_type, [])
            if matcher.handler is not None and matcher.matches(tool_name)
        ]

    async def _invoke_handler(
        self,
        matcher: HookMatcher,
        event: Any,
    ) -> Optional[HookResult]:
        """Invoke a handler with timeout protection."""
        try:
            if asyncio.iscoroutinefunction(matcher.handler):
                result = await asyncio.wait_for(
                    matcher.handler(event),
                    timeout=matcher.timeout,
                )
            else:
                result = matcher.handler(event)

            if isinstance(result, HookResult):
                return result
            # None or any other return value is treated as allow
            return None
        except HookDeniedError as e:
            return HookResult(decision="deny", reason=str(e))
        except asyncio.TimeoutError:
            logger.warning(
                f"Hook timed out after {matcher.timeout}s for tool "
                f"{getattr(event, 'tool_name', '?')}"
            )
            return HookResult(
                decision="deny",
                reason=f"Hook timed out after {matcher.timeout}s",
            )
        except Exception as e:
            logger.warning(
                f"Hook raised exception for tool "
                f"{getattr(event, 'tool_name', '?')}: {e}"
            )
            # Hook errors don't block execution
            return None

    def add_hooks(self, event_type: str, matchers: List[HookMatcher]) -> None:
        """Add additional hook matchers to an event type."""
        if event_type not in self._hooks:
            self._hooks[event_type] = []
        self._hooks[event_type].extend(matchers)
