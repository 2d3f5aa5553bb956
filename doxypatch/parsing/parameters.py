"""Depth-aware parameter splitting and parameter-name recovery."""

from __future__ import annotations

import re
from typing import List, Optional

from ..models import Parameter

_OPENERS = "(<{["
_CLOSERS = ")>}]"

_FUNCTION_POINTER = re.compile(
    r"\(\s*([*&^]+\s*\w+)\s*(?:\[[^\]]*\])?\s*\)\s*\("
)
_IDENTIFIER = re.compile(r"^[A-Za-z_]\w*$")
_TRAILING_SUBSCRIPT = re.compile(r"\[[^\[\]]*\]$")


def _strip_enclosing_parens(text: str) -> str:
    text = text.strip()
    if not (text.startswith("(") and text.endswith(")")):
        return text
    depth = 0
    for index, char in enumerate(text):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0 and index != len(text) - 1:
                # "(a)(b)" is not one enclosing pair
                return text
    return text[1:-1].strip()


def split_parameters(text: str) -> List[str]:
    """Split a parameter list on top-level commas.

    One enclosing pair of parentheses is removed first. ``void`` and empty
    lists yield no segments. Nesting depth follows ``( < {`` against
    ``) > }`` so generic arguments and default initializers stay intact.
    """
    inner = _strip_enclosing_parens(text)
    if not inner or inner == "void":
        return []

    segments: List[str] = []
    depth = 0
    current: List[str] = []
    for char in inner:
        if char in "(<{":
            depth += 1
        elif char in ")>}":
            depth = max(depth - 1, 0)
        if char == "," and depth == 0:
            segments.append("".join(current).strip())
            current = []
            continue
        current.append(char)

    tail = "".join(current).strip()
    if tail:
        segments.append(tail)
    return segments


def _cut_default_value(decl: str) -> str:
    depth = 0
    for index, char in enumerate(decl):
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS:
            depth = max(depth - 1, 0)
        elif char == "=" and depth == 0:
            previous = decl[index - 1] if index else ""
            following = decl[index + 1] if index + 1 < len(decl) else ""
            if previous in "=!<>" or following == "=":
                continue
            return decl[:index].rstrip()
    return decl


def _last_top_level_token(decl: str) -> str:
    tokens: List[str] = []
    depth = 0
    current: List[str] = []
    for char in decl:
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS:
            depth = max(depth - 1, 0)
        if char.isspace() and depth == 0:
            if current:
                tokens.append("".join(current))
                current = []
            continue
        current.append(char)
    if current:
        tokens.append("".join(current))
    return tokens[-1] if tokens else ""


def extract_parameter_name(decl: str) -> Optional[str]:
    """Recover the declared name of one parameter, or ``None``.

    Function-pointer declarators keep their pointer marker
    (``int (*cb)(int)`` gives ``*cb``); everything else is reduced to a
    bare identifier.
    """
    decl = _cut_default_value(decl.strip())
    if not decl:
        return None

    pointer = _FUNCTION_POINTER.search(decl)
    if pointer:
        return re.sub(r"\s+", "", pointer.group(1))

    token = _last_top_level_token(decl)
    token = token.replace("*", "").replace("&", "")
    token = _TRAILING_SUBSCRIPT.sub("", token)
    if ">" in token:
        token = token.rsplit(">", 1)[1]
    if not _IDENTIFIER.match(token):
        return None
    return token


def parse_parameters(text: str) -> List[Parameter]:
    """Split ``text`` and pair every segment with its extracted name."""
    return [
        Parameter(declared_text=segment, extracted_name=extract_parameter_name(segment))
        for segment in split_parameters(text)
    ]
