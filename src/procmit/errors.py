"""
errors.py – Exception taxonomy and the top-level run result.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class ProcmitError(Exception):
    """Base class for every condition that aborts a report."""


class OptionError(ProcmitError):
    """Malformed command-line option or option value."""


class ProviderError(ProcmitError):
    """Process enumeration, mitigation or command-line retrieval failed."""


class SchemaError(ProcmitError):
    """The mitigation schema does not match MitigationRecord."""


@dataclass(frozen=True)
class RunResult:
    ok: bool
    error: Optional[str] = None

    @classmethod
    def success(cls) -> "RunResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, message: str) -> "RunResult":
        return cls(ok=False, error=message)
