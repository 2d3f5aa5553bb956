"""Doxygen tag parsing, skeleton building and signature cross-checks."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..models import Diagnostic, Severity, Signature
from ..parsing import patterns
from ..parsing.cursor import DocTagKind
from ..parsing.parameters import parse_parameters

_SUBSCRIPT = re.compile(r"\[.*?\]")

_TAG_PATTERNS = (
    (DocTagKind.CLASS, patterns.DOC_CLASS),
    (DocTagKind.BRIEF, patterns.DOC_BRIEF),
    (DocTagKind.PARAM, patterns.DOC_PARAM),
    (DocTagKind.RETVAL, patterns.DOC_RETVAL),
)


@dataclass(frozen=True)
class DocTag:
    """One ``/// @tag`` line found in a pending documentation block."""

    kind: DocTagKind
    description: str
    name: str = ""


@dataclass
class ParsedDocBlock:
    """Tags of a documentation block plus every line that carried no known tag."""

    classes: List[DocTag] = field(default_factory=list)
    briefs: List[DocTag] = field(default_factory=list)
    params: List[DocTag] = field(default_factory=list)
    retvals: List[DocTag] = field(default_factory=list)
    other_text: str = ""

    @property
    def has_function_tags(self) -> bool:
        return bool(self.briefs or self.params or self.retvals)


def parse_doc_block(text: str) -> ParsedDocBlock:
    """Sort the lines of ``text`` into tags and untagged text."""
    block = ParsedDocBlock()
    buckets = {
        DocTagKind.CLASS: block.classes,
        DocTagKind.BRIEF: block.briefs,
        DocTagKind.PARAM: block.params,
        DocTagKind.RETVAL: block.retvals,
    }
    pos = 0
    while pos < len(text):
        for kind, pattern in _TAG_PATTERNS:
            match = pattern.match(text, pos)
            if match:
                name = (match.group("name") or "").strip() if kind is DocTagKind.PARAM else ""
                buckets[kind].append(DocTag(kind, match.group("rest").strip(), name))
                break
        else:
            match = patterns.GENERIC_LINE.match(text, pos)
            if match is None or match.end() == pos:
                block.other_text += text[pos:]
                break
            block.other_text += match.group(0)
        pos = match.end()
    return block


@dataclass(frozen=True)
class SkeletonLine:
    """A tag line of a skeleton; ``kind`` is ``None`` for an untagged ``///`` line."""

    kind: Optional[DocTagKind]
    text: str = ""

    def render(self, indent: str) -> str:
        if self.kind is None:
            return f"{indent}///"
        line = f"{indent}/// @{self.kind.value}"
        return f"{line} {self.text}" if self.text else line


@dataclass
class DocSkeleton:
    """Ordered tag lines followed by untagged text kept from the original block."""

    indent: str
    lines: List[SkeletonLine] = field(default_factory=list)
    trailing_text: str = ""

    @classmethod
    def for_signature(
        cls,
        indent: str,
        parameter_names: Sequence[str],
        returns: bool,
        trailing_text: str = "",
    ) -> "DocSkeleton":
        lines = [SkeletonLine(DocTagKind.BRIEF), SkeletonLine(None)]
        lines.extend(SkeletonLine(DocTagKind.PARAM, name) for name in parameter_names)
        if returns:
            lines.append(SkeletonLine(DocTagKind.RETVAL))
        return cls(indent=indent, lines=lines, trailing_text=trailing_text)

    def render(self, newline: str = "\n") -> str:
        body = "".join(line.render(self.indent) + newline for line in self.lines)
        return body + self.trailing_text


@dataclass
class DocAnalysis:
    """Result of checking one signature against its pending documentation."""

    name: str
    text: str
    needs_write: bool
    diagnostics: List[Diagnostic] = field(default_factory=list)


def clean_name(name: str) -> str:
    """Strip pointer, reference and subscript decoration from a name."""
    name = name.strip().replace("*", "").replace("&", "").replace("[]", "")
    return _SUBSCRIPT.sub("", name)


def parameter_names(signature: Signature) -> List[str]:
    names = []
    for parameter in parse_parameters(signature.parameter_list_text):
        if parameter.extracted_name:
            names.append(clean_name(parameter.extracted_name))
    return names


def analyze(
    signature: Signature, pending_text: str, indent: str = "", newline: str = "\n"
) -> DocAnalysis:
    """Compare ``signature`` with the documentation block written above it.

    A block with no ``@brief``, ``@param`` or ``@retval`` is replaced by a fresh
    skeleton and flagged as an error; otherwise the block is kept and every
    mismatch is reported.
    """
    name = clean_name(signature.qualified_name)
    params = parameter_names(signature)
    returns = signature.has_return_value
    block = parse_doc_block(pending_text)
    diagnostics: List[Diagnostic] = []

    def error(message: str) -> None:
        diagnostics.append(Diagnostic(Severity.ERROR, f"{name} - {message}"))

    def warning(message: str) -> None:
        diagnostics.append(Diagnostic(Severity.WARNING, f"{name} - {message}"))

    if not block.has_function_tags:
        error("empty doxygen header added")
        skeleton = DocSkeleton.for_signature(indent, params, returns, block.other_text)
        return DocAnalysis(name, skeleton.render(newline), True, diagnostics)

    if not block.briefs:
        error("@brief not found, add it manually")
    for brief in block.briefs:
        if not brief.description:
            warning("empty @brief detected, fix it")

    if len(block.classes) == 1:
        if not block.classes[0].description:
            warning("empty @class detected, fix it")
    elif len(block.classes) > 1:
        error("more than 1 @class detected, fix it")

    documented = [tag.name for tag in block.params]
    for param in params:
        if param not in documented:
            error(f"@param '{param}' not found, add it manually")
    for tag in block.params:
        if tag.name in params:
            if not tag.description:
                warning(f"empty @param {tag.name} detected, fix it")
        else:
            error(f"@param '{tag.name}' not present, remove it manually")

    if returns:
        if not block.retvals:
            error("@retval not found, add it manually")
        elif len(block.retvals) == 1:
            if not block.retvals[0].description:
                warning("empty @retval detected, fix it")
        else:
            error("more than 1 @retval detected, fix it")
    elif block.retvals:
        error("@retval present but function doesn't return, remove it manually")

    return DocAnalysis(name, pending_text, False, diagnostics)


__all__ = [
    "DocAnalysis",
    "DocSkeleton",
    "DocTag",
    "ParsedDocBlock",
    "SkeletonLine",
    "analyze",
    "clean_name",
    "parse_doc_block",
]
