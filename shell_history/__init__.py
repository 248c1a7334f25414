"""
Shell History - command gate and history logger for agent shell tools

Plugs into an agent host's tool-execution hooks. Blocks disallowed shell
commands, pauses commands while the machine is overloaded, and logs every
command with its output to ~/.tmp/history/<session>.log.

Primary API:
    from shell_history import HookEngine, create_shell_history_hooks

    engine = HookEngine(hooks=create_shell_history_hooks())

Or drive the interceptor directly:
    from shell_history import ShellHistoryInterceptor

    interceptor = ShellHistoryInterceptor()
    await interceptor.on_before_execute("bash", {"command": "ls"}, "session-1")
    await interceptor.on_after_execute("bash", "session-1", "README.md\\n")
"""

# Primary API
from shell_history.interceptor import (
    ShellHistoryInterceptor,
    create_shell_history_hooks,
)

# Configuration
from shell_history.config import (
    MAX_LOAD_ENV,
    LoadThrottleConfig,
    ShellHistoryConfig,
    parse_max_load,
)

# Building blocks
from shell_history.blocklist import Blocklist, CommandBlockedError
from shell_history.history import (
    HistoryLog,
    format_command_entry,
    format_output_entry,
    sanitize_session_id,
)
from shell_history.load import LoadSampler
from shell_history.throttle import LoadGate, LoadWaitResult

# Hooks
from shell_history.hooks import (
    HookDeniedError,
    HookEngine,
    HookMatcher,
    HookResult,
    PreToolUseEvent,
    PostToolUseEvent,
    PostToolUseFailureEvent,
)

__version__ = "0.1.0"

__all__ = [
    "ShellHistoryInterceptor",
    "create_shell_history_hooks",
    "MAX_LOAD_ENV",
    "LoadThrottleConfig",
    "ShellHistoryConfig",
    "parse_max_load",
    "Blocklist",
    "CommandBlockedError",
    "HistoryLog",
    "format_command_entry",
    "format_output_entry",
    "sanitize_session_id",
    "LoadSampler",
    "LoadGate",
    "LoadWaitResult",
    "HookDeniedError",
    "HookEngine",
    "HookMatcher",
    "HookResult",
    "PreToolUseEvent",
    "PostToolUseEvent",
    "PostToolUseFailureEvent",
]
