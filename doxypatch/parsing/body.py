"""Heuristic scanner locating the closing brace of a function body."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Tuple

_DIRECTIVE = re.compile(
    r"#[ \t]*(?P<kind>ifdef|ifndef|if[ \t]+defined|if[ \t]*![ \t]*defined|if|elif|else|endif)\b"
)


@dataclass
class ConditionalFrame:
    """One open ``#if`` group and whether its current branch is assumed compiled."""

    assumed_active: bool
    in_else_region: bool = False

    @property
    def counts_braces(self) -> bool:
        return self.assumed_active or self.in_else_region


# Opening directives and the branch belief they start with.
_OPENING_BELIEF = {
    "ifdef": False,
    "ifdefined": False,
    "ifndef": True,
    "if!defined": True,
    "if": True,
}


def _apply_directive(kind: str, stack: List[ConditionalFrame]) -> None:
    if kind in _OPENING_BELIEF:
        stack.append(ConditionalFrame(assumed_active=_OPENING_BELIEF[kind]))
    elif kind == "else":
        if stack:
            top = stack[-1]
            top.assumed_active = not top.assumed_active
            top.in_else_region = top.assumed_active
    elif kind == "endif":
        if stack:
            stack.pop()
    # "#elif" leaves the belief unchanged


def find_function_body(text: str, brace_pos: int) -> Tuple[int, int]:
    """Return ``(brace_pos, end)`` where ``text[end - 1]`` closes the body.

    Braces inside string and character literals and inside comments are
    ignored. Preprocessor groups are resolved with a fixed guess: ``#ifdef``
    and ``#if defined`` branches are assumed compiled out, ``#ifndef``,
    ``#if !defined`` and any other ``#if`` are assumed compiled in, and
    ``#else`` flips the guess. If the text ends before the braces balance,
    ``end`` is ``len(text)``.
    """
    if not 0 <= brace_pos < len(text) or text[brace_pos] != "{":
        raise ValueError(f"No opening brace at offset {brace_pos}")

    length = len(text)
    depth = 0
    in_string = in_char = in_block_comment = in_line_comment = False
    stack: List[ConditionalFrame] = []

    index = brace_pos
    while index < length:
        char = text[index]
        following = text[index + 1] if index + 1 < length else ""

        if in_line_comment:
            if char in "\r\n":
                in_line_comment = False
            index += 1
            continue
        if in_block_comment:
            if char == "*" and following == "/":
                in_block_comment = False
                index += 2
            else:
                index += 1
            continue
        if in_string or in_char:
            if char == "\\":
                index += 2
                continue
            if in_string and char == '"':
                in_string = False
            elif in_char and char == "'":
                in_char = False
            index += 1
            continue

        if char == "/" and following == "*":
            in_block_comment = True
            index += 2
            continue
        if char == "/" and following == "/":
            in_line_comment = True
            index += 2
            continue
        if char == '"':
            in_string = True
        elif char == "'":
            in_char = True
        elif char == "#":
            directive = _DIRECTIVE.match(text, index)
            if directive:
                _apply_directive(re.sub(r"[ \t]+", "", directive.group("kind")), stack)
                index = directive.end()
                continue
        elif not stack or stack[-1].counts_braces:
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return brace_pos, index + 1
        index += 1

    return brace_pos, length
