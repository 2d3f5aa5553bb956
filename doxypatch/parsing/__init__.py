"""Lexical recognition of C-family declarations and function bodies."""

from .body import find_function_body
from .classifier import SourceClassifier, fold_token, pending_for_signature
from .cursor import Cursor, DocTagKind, Token, TokenKind
from .dialects import DIALECTS, SUPPORTED_EXTENSIONS, Dialect, dialect_for
from .parameters import extract_parameter_name, parse_parameters, split_parameters
from .signature import decompose

__all__ = [
    "Cursor",
    "DIALECTS",
    "Dialect",
    "DocTagKind",
    "SUPPORTED_EXTENSIONS",
    "SourceClassifier",
    "Token",
    "TokenKind",
    "decompose",
    "dialect_for",
    "extract_parameter_name",
    "find_function_body",
    "fold_token",
    "parse_parameters",
    "pending_for_signature",
    "split_parameters",
]
