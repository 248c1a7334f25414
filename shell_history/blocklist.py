"""
Command Blocklist

Static substring -> remediation mapping for commands agents may not run.
"""

from typing import Dict, Mapping, Optional, Tuple

from shell_history.hooks import HookDeniedError


class CommandBlockedError(HookDeniedError):
    """Raised when a command contains a blocked substring."""

    def __init__(self, pattern: str, remediation: str, command: str = ""):
        self.pattern = pattern
        self.remediation = remediation
        self.command = command
        super().__init__(f'Command not allowed: "{pattern}". {remediation}')


class Blocklist:
    """
    Substring blocklist for shell commands.

    Patterns are matched in insertion order against the raw command text;
    the first pattern contained in the command wins.

    Example:
        blocklist = Blocklist({"go test": "Use 'make test' instead."})
        blocklist.check("go test ./...")  # raises CommandBlockedError
    """

    def __init__(self, blocked_commands: Optional[Mapping[str, str]] = None):
        self._blocked: Dict[str, str] = dict(blocked_commands or {})

    @property
    def patterns(self) -> Dict[str, str]:
        """Get a copy of the pattern -> remediation mapping."""
        return dict(self._blocked)

    def find(self, command: Optional[str]) -> Optional[Tuple[str, str]]:
        """
        Find the first blocked pattern in a command.

        Args:
            command: Command text, may be None or empty

        Returns:
            (pattern, remediation) or None if the command is allowed
        """
        if not command:
            return None
        for pattern, remediation in self._blocked.items():
            if pattern in command:
                return pattern, remediation
        return None

    def check(self, command: Optional[str]) -> None:
        """Raise CommandBlockedError if the command is blocked."""
        match = self.find(command)
        if match is not None:
            pattern, remediation = match
            raise CommandBlockedError(pattern, remediation, command=command or "")
