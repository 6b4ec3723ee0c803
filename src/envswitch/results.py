"""
Typed outcomes for the switcher phases.

Every phase reports a PhaseResult; fatal outcomes are additionally raised as
SwitchError so the CLI can terminate with the right exit code.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

EXIT_CONFIG_ERROR = 1
EXIT_ENV_MISSING = 2
EXIT_NO_INTERPRETER = 3
EXIT_REFUSED_CLOBBER = 4
EXIT_LOCKED = 5


class PhaseStatus(enum.Enum):
    OK = "ok"
    WARNING = "warning"
    FATAL = "fatal"


@dataclass
class PhaseResult:
    phase: str
    status: PhaseStatus = PhaseStatus.OK
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    def warn(self, message: str) -> "PhaseResult":
        """Downgrades an OK result to a warning, keeping the first message."""
        if self.status is PhaseStatus.OK:
            self.status = PhaseStatus.WARNING
            self.message = message
        return self


@dataclass
class SwitchReport:
    results: List[PhaseResult] = field(default_factory=list)

    def add(self, result: PhaseResult) -> PhaseResult:
        self.results.append(result)
        return result

    def get(self, phase: str) -> Optional[PhaseResult]:
        for result in self.results:
            if result.phase == phase:
                return result
        return None

    @property
    def warnings(self) -> List[PhaseResult]:
        return [r for r in self.results if r.status is PhaseStatus.WARNING]


class SwitchError(Exception):
    """A fatal phase outcome. ``exit_code`` is what the process should exit with."""

    def __init__(self, message: str, exit_code: int = 1, phase: Optional[str] = None):
        super().__init__(message)
        self.exit_code = exit_code
        self.phase = phase


class CommandError(SwitchError):
    """An external command (conda, sudo, ...) exited non-zero."""

    def __init__(
        self,
        message: str,
        command: Sequence[str] = (),
        exit_code: int = 1,
        output: Optional[List[str]] = None,
    ):
        super().__init__(message, exit_code=exit_code or 1)
        self.command = list(command)
        self.output = output or []


class ConfigError(SwitchError):
    def __init__(self, message: str):
        super().__init__(message, exit_code=EXIT_CONFIG_ERROR, phase="config")
