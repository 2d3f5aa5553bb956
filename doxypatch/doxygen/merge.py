"""Splice generated documentation prose into a Doxygen tag skeleton."""

from __future__ import annotations

import re
from typing import List

_RETURN_TAGS = re.compile(r"@returns?\b|@result\b")
_DIRECTION_MARKERS = re.compile(r"\[\s*(?:in|out)\s*(?:,\s*(?:in|out)\s*)?\]")
_TAG_START = re.compile(r"(?:^|(?<=[\s/*]))@(?=\w)")
_WHITESPACE = re.compile(r"\s+")
_NOISE = re.compile(r"^(?:[/*\s]*|```.*)$")
_SKELETON_TAG = re.compile(r"^\s*///\s+@")
_BARE_DOC = re.compile(r"^\s*///\s*$")
_CONTINUATION = re.compile(r"^\s*///(?!\s*@)\s+")

_DOC_PREFIX = "/// "


def _split_lines(text: str) -> List[str]:
    return [line for line in re.split(r"[\r\n]+", text) if line]


def normalize_prose_line(line: str) -> str:
    """Bring one generated line into ``/// @tag text`` form; empty when it is noise."""
    line = _RETURN_TAGS.sub("@retval", line)
    line = _DIRECTION_MARKERS.sub("", line)
    tag = _TAG_START.search(line)
    if tag:
        line = _DOC_PREFIX + line[tag.start() :]
    line = _WHITESPACE.sub(" ", line.strip())
    if line.startswith("*"):
        line = line[1:]
    line = line.strip()
    if _NOISE.match(line) and not _BARE_DOC.match(line):
        return ""
    return line


def align(line: str, reference: str) -> str:
    """Indent a continuation so its text starts under the reference tag's description."""
    width = len(reference) + 1
    if width <= len(_DOC_PREFIX):
        return line
    return _DOC_PREFIX + " " * (width - len(_DOC_PREFIX)) + line[len(_DOC_PREFIX) :].lstrip()


def merge_doc_header(skeleton: str, prose: str, newline: str = "\n") -> str:
    """Fill the tag lines of ``skeleton`` with matching lines from ``prose``.

    The first prose line that starts with a skeleton tag line's text replaces
    that line, keeping its indentation. Untagged ``///`` lines that follow it
    are appended as aligned continuations until another tag appears. Skeleton
    lines with no matching prose are kept unchanged.
    """
    generated = [line for line in map(normalize_prose_line, _split_lines(prose)) if line]
    merged: List[str] = []

    for source_line in _split_lines(skeleton):
        if not _SKELETON_TAG.match(source_line):
            merged.append(source_line)
            continue

        unpadded = source_line.lstrip()
        pad = source_line[: len(source_line) - len(unpadded)]
        result = None
        for line in generated:
            if _BARE_DOC.match(line):
                continue
            if line.startswith(unpadded + " "):
                if result is None:
                    result = line.replace(unpadded, source_line, 1)
                else:
                    line = line.replace(unpadded, _DOC_PREFIX, 1)
                    result += newline + pad + align(line, unpadded)
            elif result is not None:
                if not _CONTINUATION.match(line):
                    break
                result += newline + pad + align(line, unpadded)
        merged.append(result if result is not None else source_line)

    return newline.join(merged) + newline
