"""Tests for the cascading classifier and the pending-block fold."""

from __future__ import annotations

import pytest

from doxypatch.models import PendingDocBlock
from doxypatch.parsing.classifier import SourceClassifier, fold_token, pending_for_signature
from doxypatch.parsing.cursor import Cursor, DocTagKind, Token, TokenKind
from doxypatch.parsing.dialects import CPP, CSHARP, HPP, dialect_for


def _tokens(text: str, dialect=CPP) -> list[Token]:
    classifier = SourceClassifier(dialect)
    cursor = Cursor(text)
    tokens = []
    while True:
        token = classifier.classify(cursor)
        tokens.append(token)
        if token.kind is TokenKind.END_OF_INPUT:
            return tokens
        end = token.end
        if token.kind is TokenKind.SIGNATURE_HEADER:
            end = token.brace_pos + 1
        assert end > cursor.pos
        cursor = cursor.advance_to(end)


def test_classifier_covers_every_construct() -> None:
    text = (
        "namespace app {\n"
        "\n"
        "/// @class Widget\n"
        "/// @brief Draws things.\n"
        "/// @param size Edge length.\n"
        "/// @retval Zero on success.\n"
        "/// free text\n"
        "// plain remark\n"
        "/* block\n   remark */\n"
        "int Widget::draw(int size)\n"
        "{\n"
    )

    kinds = [(token.kind, token.doc_kind) for token in _tokens(text)]

    assert kinds[:10] == [
        (TokenKind.TYPE_DECLARATION, None),
        (TokenKind.BLANK, None),
        (TokenKind.DOC_TAG, DocTagKind.CLASS),
        (TokenKind.DOC_TAG, DocTagKind.BRIEF),
        (TokenKind.DOC_TAG, DocTagKind.PARAM),
        (TokenKind.DOC_TAG, DocTagKind.RETVAL),
        (TokenKind.DOC_TAG, DocTagKind.GENERIC),
        (TokenKind.INLINE_COMMENT, None),
        (TokenKind.BLOCK_COMMENT, None),
        (TokenKind.SIGNATURE_HEADER, None),
    ]


def test_type_declaration_reports_name() -> None:
    token = SourceClassifier(CPP).classify(Cursor("class Widget : public Base {\n"))

    assert token.kind is TokenKind.TYPE_DECLARATION
    assert token.type_name == "Widget"


def test_header_token_stops_before_brace() -> None:
    text = "int add(int a, int b) // sum\n{\n    return a + b;\n}\n"
    token = SourceClassifier(CPP).classify(Cursor(text))

    assert token.kind is TokenKind.SIGNATURE_HEADER
    assert token.is_constructor is False
    assert token.text == "int add(int a, int b) // sum\n"
    assert text[token.brace_pos] == "{"


@pytest.mark.parametrize(
    ("dialect", "line"),
    [
        (CPP, "Widget::Widget(int size) : _size(size)\n{\n"),
        (HPP, "    explicit Widget(int size) : _size(size) {\n"),
        (CSHARP, "    public Widget(int size) : base(size)\n    {\n"),
    ],
)
def test_constructor_headers(dialect, line: str) -> None:
    token = SourceClassifier(dialect).classify(Cursor(line))

    assert token.kind is TokenKind.SIGNATURE_HEADER
    assert token.is_constructor is True


@pytest.mark.parametrize(
    "line",
    [
        "    if (ready) {\n",
        "    while (count > 0) {\n",
        "    return compute(a);\n",
        "    int value = compute(a);\n",
    ],
)
def test_statements_are_not_headers(line: str) -> None:
    token = SourceClassifier(CPP).classify(Cursor(line))

    assert token.kind is TokenKind.GENERIC_LINE
    assert token.text == line


def test_csharp_method_and_type_declaration() -> None:
    text = "public sealed class Widget\n{\n    public (int, int) Size()\n    {\n"
    tokens = _tokens(text, CSHARP)

    assert tokens[0].kind is TokenKind.TYPE_DECLARATION
    assert tokens[0].type_name == "Widget"
    assert tokens[1].kind is TokenKind.SIGNATURE_HEADER
    assert tokens[1].is_constructor is False


def test_separator_comment_is_not_a_doc_line() -> None:
    token = SourceClassifier(CPP).classify(Cursor("//////////////\n"))

    assert token.kind is TokenKind.INLINE_COMMENT


def test_classification_is_total_on_trailing_text() -> None:
    tokens = _tokens("x")

    assert tokens[0].kind is TokenKind.GENERIC_LINE
    assert tokens[0].text == "x"
    assert tokens[-1].kind is TokenKind.END_OF_INPUT


def _token(kind: TokenKind, text: str) -> Token:
    return Token(kind, text, 0, len(text))


def test_fold_seeds_block_with_doc_tags_only() -> None:
    pending = PendingDocBlock()

    pending, emitted = fold_token(pending, _token(TokenKind.INLINE_COMMENT, "// note\n"))
    assert (pending.is_empty, emitted) == (True, "// note\n")

    pending, emitted = fold_token(pending, _token(TokenKind.DOC_TAG, "/// @brief x\n"))
    pending, emitted = fold_token(pending, _token(TokenKind.BLANK, "\n"))
    pending, emitted = fold_token(pending, _token(TokenKind.BLOCK_COMMENT, "/* c */\n"))

    assert emitted == ""
    assert pending == PendingDocBlock("/// @brief x\n\n/* c */\n", 3)


def test_fold_flushes_on_code() -> None:
    pending = PendingDocBlock("/// @brief x\n", 1)

    pending, emitted = fold_token(pending, _token(TokenKind.GENERIC_LINE, "int x;\n"))

    assert pending.is_empty
    assert emitted == "/// @brief x\nint x;\n"


def test_rebuild_blank_line_detaches_block() -> None:
    pending = PendingDocBlock("/// @brief x\n", 1)

    pending, emitted = fold_token(pending, _token(TokenKind.BLANK, "\n"), rebuild=True)

    assert pending.is_empty
    assert emitted == "/// @brief x\n\n"
    assert pending_for_signature(PendingDocBlock("///\n", 1), rebuild=True).is_empty


def test_fold_refuses_signature_headers() -> None:
    with pytest.raises(ValueError):
        fold_token(PendingDocBlock(), _token(TokenKind.SIGNATURE_HEADER, "int f()\n"))


def test_dialect_lookup_by_extension() -> None:
    assert dialect_for("main.cpp") is CPP
    assert dialect_for("widget.HPP") is HPP
    assert dialect_for("Program.cs") is CSHARP
    assert dialect_for("script.py") is None
