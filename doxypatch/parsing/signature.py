"""Backward structural decomposition of function and constructor headers."""

from __future__ import annotations

import re
from typing import Optional, Tuple

from ..models import Signature

_COMMENTS = re.compile(r"/\*.*?\*/|//[^\r\n]*", re.DOTALL)
_WORD_BREAK = re.compile(
    r"(?<=\w)[ \t]*(?:\r\n|\r|\n)[ \t\r\n]*(?=\w)|(?<=\w)\t+(?=\w)"
)
_LAYOUT = re.compile(r"[\r\n\t]")
_TEMPLATE = re.compile(r"^\s*template\s*<")
_INITIALIZER = re.compile(r"\)\s*(?:noexcept\s*)?:(?!:)")
_MODIFIER = re.compile(
    r"\s*(?:public|private|protected|internal|static|explicit|virtual|constexpr)\b"
)


def normalize_header(header: str) -> str:
    """Drop comments and layout noise, keeping words apart."""
    text = _COMMENTS.sub("", header)
    text = _WORD_BREAK.sub(" ", text)
    return _LAYOUT.sub("", text).strip()


def _strip_template(code: str) -> Optional[str]:
    match = _TEMPLATE.match(code)
    if not match:
        return code
    depth = 1
    index = match.end()
    while index < len(code) and depth:
        if code[index] == "<":
            depth += 1
        elif code[index] == ">":
            depth -= 1
        index += 1
    if depth:
        return None
    return code[index:]


def _split_parameters(code: str) -> Optional[Tuple[str, str]]:
    initializer = _INITIALIZER.search(code)
    if initializer:
        code = code[: initializer.start() + 1]

    close = code.rfind(")")
    if close == -1:
        return None
    depth = 0
    index = close
    while index >= 0:
        if code[index] == ")":
            depth += 1
        elif code[index] == "(":
            depth -= 1
            if depth == 0:
                break
        index -= 1
    if index < 0:
        return None
    return code[:index], code[index : close + 1].strip()


def _balanced_run(code: str, end: int, opener: str, closer: str) -> int:
    """Index of the ``opener`` balancing ``code[end]``, or -1."""
    depth = 0
    for index in range(end, -1, -1):
        char = code[index]
        if char == closer:
            depth += 1
        elif char == opener:
            depth -= 1
            if depth == 0:
                return index
    return -1


def _scope_operator(code: str, index: int) -> int:
    """Position left of a ``::`` token ending at ``index``, or -1."""
    probe = index
    while probe >= 0 and code[probe] == " ":
        probe -= 1
    if probe < 1 or code[probe] != ":" or code[probe - 1] != ":":
        return -1
    probe -= 2
    while probe >= 0 and code[probe] == " ":
        probe -= 1
    return probe


def extract_name(code: str) -> Tuple[str, str]:
    """Split ``code`` into the text before the name and the name itself.

    The scan walks backwards from the end. A balanced ``<...>`` run, a
    balanced ``(...)`` run and a ``::`` operator are each consumed whole,
    at most once; other characters are taken one at a time until a space
    separates the name from what precedes it.
    """
    code = code.strip()
    parts = []
    took_angle = took_round = took_scope = False
    index = len(code) - 1
    while index >= 0:
        char = code[index]
        if not took_angle and char == ">" and index > 0:
            start = _balanced_run(code, index, "<", ">")
            if start != -1:
                parts.append(code[start : index + 1])
                index = start - 1
                while index >= 0 and code[index] == " ":
                    index -= 1
                took_angle = True
                continue
        if not took_round and char == ")" and index > 0:
            start = _balanced_run(code, index, "(", ")")
            if start != -1:
                parts.append(code[start : index + 1])
                index = start - 1
                took_round = True
                continue
        if not took_scope and char in " :":
            left = _scope_operator(code, index)
            if left != -1:
                parts.append("::")
                index = left
                took_scope = True
                continue
        if char == " ":
            break
        parts.append(char)
        index -= 1

    name = "".join(reversed(parts))
    rest = code[:index] if index >= 0 else ""
    return rest, name


def _split_modifiers(code: str) -> Tuple[str, str]:
    end = 0
    while True:
        match = _MODIFIER.match(code, end)
        if not match:
            break
        end = match.end()
    return code[:end].strip(), code[end:].strip()


def decompose(header: str, *, is_constructor: bool = False) -> Optional[Signature]:
    """Decompose a matched header into modifiers, return type, name and parameters.

    Returns ``None`` when the template prefix or the parameter list does not
    balance, or when no name can be recovered. A header matched by a
    constructor shape never carries a return type: everything before its name
    is kept as modifiers.
    """
    code = normalize_header(header)
    stripped = _strip_template(code)
    if stripped is None:
        return None
    split = _split_parameters(stripped)
    if split is None:
        return None
    code, parameters = split
    rest, name = extract_name(code)
    if not name:
        return None
    if is_constructor:
        modifiers, return_type = rest.strip(), ""
    else:
        modifiers, return_type = _split_modifiers(rest)
    return Signature(
        modifiers=modifiers,
        return_type=return_type,
        qualified_name=name,
        parameter_list_text=parameters,
        is_constructor=not return_type,
    )
