"""Per-language header and type-declaration patterns keyed by file extension."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import re
from typing import Dict, Optional

from . import patterns


@dataclass(frozen=True)
class Dialect:
    """Patterns that recognize one language family's declarations."""

    name: str
    language: str
    type_declaration: re.Pattern[str]
    constructor: re.Pattern[str]
    method: re.Pattern[str]


CPP = Dialect(
    name="cpp",
    language="C/C++",
    type_declaration=patterns.cpp_type_declaration(),
    constructor=patterns.cpp_constructor(),
    method=patterns.cpp_method(),
)

HPP = Dialect(
    name="hpp",
    language="C/C++",
    type_declaration=patterns.cpp_type_declaration(),
    constructor=patterns.hpp_constructor(),
    method=patterns.cpp_method(),
)

CSHARP = Dialect(
    name="csharp",
    language="C#",
    type_declaration=patterns.csharp_type_declaration(),
    constructor=patterns.csharp_constructor(),
    method=patterns.csharp_method(),
)

DIALECTS: Dict[str, Dialect] = {dialect.name: dialect for dialect in (CPP, HPP, CSHARP)}

_DIALECT_BY_SUFFIX: Dict[str, Dialect] = {
    ".c": CPP,
    ".cpp": CPP,
    ".cc": CPP,
    ".cxx": CPP,
    ".h": HPP,
    ".hpp": HPP,
    ".hh": HPP,
    ".hxx": HPP,
    ".cs": CSHARP,
}

SUPPORTED_EXTENSIONS = tuple(sorted(_DIALECT_BY_SUFFIX))


def dialect_for(path: Path | str) -> Optional[Dialect]:
    """Return the dialect for a file path, or ``None`` when unsupported."""
    return _DIALECT_BY_SUFFIX.get(Path(path).suffix.lower())


__all__ = ["CPP", "CSHARP", "DIALECTS", "Dialect", "HPP", "SUPPORTED_EXTENSIONS", "dialect_for"]
