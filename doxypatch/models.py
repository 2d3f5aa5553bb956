"""Core data models shared across doxypatch components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class Severity(str, Enum):
    """How urgently a diagnostic needs attention."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class Diagnostic:
    """A message about one signature or file, anchored to an output line."""

    severity: Severity
    message: str
    line: int = 0

    def at(self, line: int) -> "Diagnostic":
        return Diagnostic(self.severity, self.message, line)


@dataclass(frozen=True)
class Signature:
    """Structural decomposition of a function or constructor header."""

    modifiers: str
    return_type: str
    qualified_name: str
    parameter_list_text: str
    is_constructor: bool = False

    @property
    def has_return_value(self) -> bool:
        if not self.return_type:
            return False
        return "void" not in self.return_type or self.qualified_name.startswith("*")


@dataclass(frozen=True)
class Parameter:
    """One declared parameter and the name recovered from it."""

    declared_text: str
    extracted_name: Optional[str]


@dataclass(frozen=True)
class PendingDocBlock:
    """Documentation/comment lines seen since the last non-doc construct."""

    text: str = ""
    lines: int = 0

    @property
    def is_empty(self) -> bool:
        return self.lines == 0

    def append(self, chunk: str) -> "PendingDocBlock":
        return PendingDocBlock(self.text + chunk, self.lines + 1)


@dataclass
class PatchResult:
    """Outcome of patching one source text."""

    text: str
    diagnostics: List[Diagnostic] = field(default_factory=list)
    modified: bool = False

    @property
    def errors(self) -> List[Diagnostic]:
        return [item for item in self.diagnostics if item.severity is Severity.ERROR]

    @property
    def warnings(self) -> List[Diagnostic]:
        return [item for item in self.diagnostics if item.severity is Severity.WARNING]


__all__ = [
    "Diagnostic",
    "Parameter",
    "PatchResult",
    "PendingDocBlock",
    "Severity",
    "Signature",
]
