"""Cascading line classifier and the pending-documentation fold."""

from __future__ import annotations

import re
from typing import Optional, Tuple

from ..models import PendingDocBlock
from . import patterns
from .cursor import Cursor, DocTagKind, Token, TokenKind
from .dialects import Dialect

_DOC_PATTERNS = (
    (DocTagKind.CLASS, patterns.DOC_CLASS),
    (DocTagKind.BRIEF, patterns.DOC_BRIEF),
    (DocTagKind.PARAM, patterns.DOC_PARAM),
    (DocTagKind.RETVAL, patterns.DOC_RETVAL),
    (DocTagKind.GENERIC, patterns.DOC_GENERIC),
)


class SourceClassifier:
    """Classifies the prefix at a cursor into exactly one token."""

    def __init__(self, dialect: Dialect) -> None:
        self.dialect = dialect

    def classify(self, cursor: Cursor) -> Token:
        """Return the token starting at ``cursor``; first matching rule wins."""
        text, pos = cursor.text, cursor.pos
        if cursor.at_end:
            return Token(TokenKind.END_OF_INPUT, "", pos, pos)

        match = patterns.BLANK_LINE.match(text, pos)
        if match:
            return self._token(TokenKind.BLANK, match)

        match = self.dialect.type_declaration.match(text, pos)
        if match:
            return self._token(TokenKind.TYPE_DECLARATION, match, type_name=match.group("name"))

        for doc_kind, pattern in _DOC_PATTERNS:
            match = pattern.match(text, pos)
            if match:
                return self._token(TokenKind.DOC_TAG, match, doc_kind=doc_kind)

        header = self._match_header(text, pos)
        if header is not None:
            match, is_constructor = header
            brace = match.start("brace")
            return Token(
                TokenKind.SIGNATURE_HEADER,
                text[match.start() : brace],
                match.start(),
                match.end(),
                is_constructor=is_constructor,
                brace_pos=brace,
            )

        for kind, pattern in (
            (TokenKind.BLOCK_COMMENT, patterns.BLOCK_COMMENT),
            (TokenKind.BLOCK_COMMENT, patterns.UNTERMINATED_BLOCK_COMMENT),
            (TokenKind.INLINE_COMMENT, patterns.INLINE_COMMENT),
            (TokenKind.GENERIC_LINE, patterns.GENERIC_LINE),
        ):
            match = pattern.match(text, pos)
            if match and match.end() > pos:
                return self._token(kind, match)

        return Token(TokenKind.GENERIC_LINE, text[pos:], pos, len(text))

    def _match_header(self, text: str, pos: int) -> Optional[Tuple[re.Match[str], bool]]:
        match = self.dialect.constructor.match(text, pos)
        if match:
            return match, True
        match = self.dialect.method.match(text, pos)
        if match:
            return match, False
        return None

    @staticmethod
    def _token(kind: TokenKind, match: re.Match[str], **extra: object) -> Token:
        return Token(kind, match.group(0), match.start(), match.end(), **extra)  # type: ignore[arg-type]


def fold_token(
    pending: PendingDocBlock, token: Token, *, rebuild: bool = False
) -> Tuple[PendingDocBlock, str]:
    """Fold one non-signature token into the pending block.

    Returns the new pending block and the text to emit. Signature headers are
    not folded here; see :func:`pending_for_signature`.
    """
    kind = token.kind
    if kind is TokenKind.SIGNATURE_HEADER:
        raise ValueError("Signature headers are documented, not folded")

    if kind is TokenKind.DOC_TAG:
        return pending.append(token.text), ""

    if kind is TokenKind.BLANK:
        if pending.is_empty:
            return pending, token.text
        pending = pending.append(token.text)
        if rebuild:
            return PendingDocBlock(), pending.text
        return pending, ""

    if kind in (TokenKind.BLOCK_COMMENT, TokenKind.INLINE_COMMENT):
        if pending.is_empty:
            return pending, token.text
        return pending.append(token.text), ""

    # type declarations, generic lines and end of input flush the block verbatim
    return PendingDocBlock(), pending.text + token.text


def pending_for_signature(pending: PendingDocBlock, *, rebuild: bool = False) -> PendingDocBlock:
    """The block a signature is checked against; rebuild mode discards it."""
    return PendingDocBlock() if rebuild else pending
