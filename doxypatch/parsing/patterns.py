"""Composable regular-expression fragments for C-family source lines.

Every compiled pattern here is meant to be used with ``pattern.match(text,
pos)`` so it anchors at the classifier cursor. Line patterns consume their
terminating line break (``\\r\\n``, ``\\r`` or ``\\n``) or stop at the end of
the text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass


_NEWLINE = r"(?:\r\n|\r|\n)"
_LINE_END = r"(?:\r\n|\r|\n|\Z)"


@dataclass(frozen=True)
class Fragment:
    """A piece of regular expression that composes with ``+``."""

    source: str

    def __add__(self, other: "Fragment") -> "Fragment":
        return Fragment(self.source + other.source)

    def group(self, name: str | None = None) -> "Fragment":
        if name:
            return Fragment(f"(?P<{name}>{self.source})")
        return Fragment(f"({self.source})")

    def optional(self) -> "Fragment":
        return Fragment(f"(?:{self.source})?")

    def compile(self, flags: int = 0) -> re.Pattern[str]:
        return re.compile(self.source, flags)


def indent() -> Fragment:
    return Fragment(r"[ \t]*").group("indent")


def comment_bars() -> Fragment:
    """Decorative ``/*****/`` lines stacked above a header."""
    return Fragment(r"(?:/\*\**/[ \t]*" + _NEWLINE + r"[ \t]*)*")


def template_prefix() -> Fragment:
    return Fragment(r"(?:template\s*<[\w\s,<>:=*&]+>\s*)?")


def access_modifiers() -> Fragment:
    return Fragment(r"(?:(?:public|private|protected|internal)\s+){0,2}")


def constructor_specifiers() -> Fragment:
    return Fragment(r"(?:(?:explicit|constexpr|virtual|inline)\s+)*")


def excluded_keywords() -> Fragment:
    """Refuse control-flow statements and leading whitespace or ``*``."""
    words = (
        "if",
        "else",
        "switch",
        "case",
        "lock",
        "using",
        "while",
        "new",
        "catch",
        "sizeof",
        "for",
        "foreach",
        "return",
        "throw",
        "public",
        "private",
        "protected",
    )
    return Fragment(r"(?!(?:" + "|".join(words) + r")\b|[\s*])")


def return_type_words(*, tuples: bool = False) -> Fragment:
    word = r"[\w:*&<>,\[\]?]+?"
    if tuples:
        word = r"(?:" + word + r"|\([\w\s,<>\[\]?]*\))"
    return Fragment(r"(?:" + word + r"\s+){1,6}")


def method_name() -> Fragment:
    return Fragment(r"[\w:*~&<>+\-%/|=!\[\]]+\s*").group("name")


def scoped_constructor_name() -> Fragment:
    return Fragment(r"[\w:*&<>,]+::~?\w+\s*").group("name")


def bare_constructor_name() -> Fragment:
    return Fragment(r"~?[\w:<>,]+\s*").group("name")


def parameter_list() -> Fragment:
    return Fragment(r"\([^;{}]*?\)")


def initializer_list() -> Fragment:
    member = r"[\w:<>.]+\s*[({][^(){};]*(?:\([^(){};]*\)[^(){};]*)*[)}]"
    return Fragment(r"\s*:\s*" + member + r"(?:\s*,\s*" + member + r")*").optional()


def body_opening() -> Fragment:
    """Anything but ``{``/``;`` up to the brace, an optional ``//`` remark, then the line break."""
    return Fragment(
        r"[^{;]*?" + r"(?P<brace>\{)[ \t]*(?://[^\r\n]*)?" + _LINE_END
    )


def _line(body: str) -> re.Pattern[str]:
    return re.compile(r"[ \t]*" + body + _LINE_END)


BLANK_LINE = re.compile(r"[ \t]*" + _NEWLINE)
DOC_CLASS = _line(r"///[ \t]*@class\b(?P<rest>[^\r\n]*)")
DOC_BRIEF = _line(r"///[ \t]*@brief\b(?P<rest>[^\r\n]*)")
DOC_PARAM = _line(
    r"///[ \t]*@param\b[ \t]*(?:\[[\w, ]*\])?[ \t]*(?P<name>[^\s\[]+)?"
    r"(?:\[[\w, ]*\])?(?P<rest>[^\r\n]*)"
)
DOC_RETVAL = _line(r"///[ \t]*@retval\b(?P<rest>[^\r\n]*)")
DOC_GENERIC = _line(r"///(?!/)(?P<rest>[^\r\n]*)")
BLOCK_COMMENT = re.compile(r"[ \t]*/\*.*?\*/(?:[ \t]*" + _NEWLINE + r")?", re.DOTALL)
UNTERMINATED_BLOCK_COMMENT = _line(r"/\*[^\r\n]*")
INLINE_COMMENT = _line(r"//[^\r\n]*")
GENERIC_LINE = re.compile(r"(?:[^\r\n\\]|\\(?:\r\n|\r|\n|.))*" + _LINE_END)

_TYPE_TAIL = r"[^{;=()]*?\{[^\r\n]*" + _LINE_END


def cpp_type_declaration() -> re.Pattern[str]:
    return re.compile(
        r"[ \t]*(?:template\s*<[^>]+>\s*)?(?:enum\s+)?(?:class|struct|union|namespace)\s+"
        r"(?P<name>[A-Za-z_]\w*)\b" + _TYPE_TAIL
    )


def csharp_type_declaration() -> re.Pattern[str]:
    return re.compile(
        r"[ \t]*(?:(?:public|private|protected|internal|static|abstract|sealed|partial"
        r"|readonly|unsafe|ref)\s+)*(?:class|struct|namespace|interface|record|enum)\s+"
        r"(?P<name>[A-Za-z_]\w*)\b[^{;=]*?\{[^\r\n]*" + _LINE_END
    )


def cpp_constructor() -> re.Pattern[str]:
    return (
        indent()
        + comment_bars()
        + template_prefix()
        + excluded_keywords()
        + scoped_constructor_name()
        + parameter_list()
        + initializer_list()
        + body_opening()
    ).compile()


def hpp_constructor() -> re.Pattern[str]:
    return (
        indent()
        + comment_bars()
        + template_prefix()
        + constructor_specifiers()
        + excluded_keywords()
        + bare_constructor_name()
        + parameter_list()
        + initializer_list()
        + body_opening()
    ).compile()


def csharp_constructor() -> re.Pattern[str]:
    return (
        indent()
        + comment_bars()
        + access_modifiers()
        + Fragment(r"(?:static\s+)?")
        + excluded_keywords()
        + bare_constructor_name()
        + parameter_list()
        + Fragment(r"\s*:\s*(?:base|this)\s*\([^;{}]*?\)").optional()
        + body_opening()
    ).compile()


def cpp_method() -> re.Pattern[str]:
    return (
        indent()
        + comment_bars()
        + template_prefix()
        + excluded_keywords()
        + return_type_words()
        + method_name()
        + parameter_list()
        + body_opening()
    ).compile()


def csharp_method() -> re.Pattern[str]:
    return (
        indent()
        + comment_bars()
        + access_modifiers()
        + excluded_keywords()
        + return_type_words(tuples=True)
        + method_name()
        + parameter_list()
        + body_opening()
    ).compile()
