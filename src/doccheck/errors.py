"""Exception hierarchy for doccheck.

Configuration errors abort the run (exit code 2). Per-file errors are caught
by the engine and turned into diagnostics so one bad file never stops a run.
"""

from __future__ import annotations


class DoccheckError(Exception):
    """Base exception for doccheck operations."""

    pass


class ConfigError(DoccheckError):
    """Raised when the rule table, options or scan root are unusable."""

    def __init__(self, message: str, source: str | None = None):
        super().__init__(message)
        self.source = source

    def __str__(self) -> str:
        message = super().__str__()
        if self.source:
            return f"{self.source}: {message}"
        return message


class UnreadableFileError(DoccheckError):
    """Raised when a source file cannot be read or decoded as text."""

    def __init__(self, message: str, path: str):
        super().__init__(message)
        self.path = path
