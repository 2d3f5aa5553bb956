"""Immutable text cursor and the tokens the classifier produces."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TokenKind(str, Enum):
    BLANK = "blank"
    DOC_TAG = "doc_tag"
    INLINE_COMMENT = "inline_comment"
    BLOCK_COMMENT = "block_comment"
    TYPE_DECLARATION = "type_declaration"
    SIGNATURE_HEADER = "signature_header"
    GENERIC_LINE = "generic_line"
    END_OF_INPUT = "end_of_input"


class DocTagKind(str, Enum):
    BRIEF = "brief"
    PARAM = "param"
    RETVAL = "retval"
    CLASS = "class"
    GENERIC = "generic"


@dataclass(frozen=True)
class Cursor:
    """Read position over a source text; advancing yields a new cursor."""

    text: str
    pos: int = 0

    @property
    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    @property
    def remaining(self) -> str:
        return self.text[self.pos :]

    def advance(self, count: int) -> "Cursor":
        if count < 0:
            raise ValueError("Cursor cannot move backwards")
        return Cursor(self.text, min(self.pos + count, len(self.text)))

    def advance_to(self, pos: int) -> "Cursor":
        return self.advance(pos - self.pos)


@dataclass(frozen=True)
class Token:
    """One classified prefix of the remaining text."""

    kind: TokenKind
    text: str
    start: int
    end: int
    doc_kind: Optional[DocTagKind] = None
    type_name: Optional[str] = None
    is_constructor: bool = False
    brace_pos: int = -1
