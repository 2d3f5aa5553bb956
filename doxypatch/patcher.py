"""Per-file documentation pass: classify, check, regenerate and re-emit."""

from __future__ import annotations

import re
from typing import List, Optional

from .doxygen.merge import merge_doc_header
from .doxygen.skeleton import DocAnalysis, analyze
from .llm.prose import ProseGenerator
from .logging import get_logger
from .models import Diagnostic, PatchResult, PendingDocBlock, Severity
from .parsing import patterns
from .parsing.body import find_function_body
from .parsing.classifier import SourceClassifier, fold_token, pending_for_signature
from .parsing.cursor import Cursor, Token, TokenKind
from .parsing.dialects import Dialect
from .parsing.signature import decompose

SKIP_MARKER = re.compile(r"/\*\s*NO\s+DOXYPATCH\s*\*/|//[ \t]*NO\s+DOXYPATCH")
_LINE_BREAK = re.compile(r"\r\n|\r|\n")

logger = get_logger("patcher")


def detect_newline(text: str) -> str:
    """Return the first line break style used in ``text``; ``\\n`` when there is none."""
    match = _LINE_BREAK.search(text)
    return match.group(0) if match else "\n"


def _count_lines(text: str) -> int:
    return len(_LINE_BREAK.findall(text))


def _leading_whitespace(text: str) -> str:
    return text[: len(text) - len(text.lstrip(" \t"))]


class SourcePatcher:
    """Ensures every function header of one dialect carries a Doxygen block."""

    def __init__(self, dialect: Dialect, prose_generator: Optional[ProseGenerator] = None) -> None:
        self.dialect = dialect
        self.classifier = SourceClassifier(dialect)
        self.prose_generator = prose_generator

    def patch(
        self,
        text: str,
        *,
        rebuild: bool = False,
        use_llm: bool = False,
        with_context: bool = False,
    ) -> PatchResult:
        """Return the text with skeletons inserted plus per-signature diagnostics.

        A file carrying the ``NO DOXYPATCH`` marker is returned unchanged.
        """
        if SKIP_MARKER.search(text):
            note = Diagnostic(Severity.INFO, "NO DOXYPATCH marker found, file skipped", 1)
            return PatchResult(text, [note], False)

        newline = detect_newline(text)
        generator = self.prose_generator if use_llm else None
        diagnostics: List[Diagnostic] = []
        if generator is not None:
            self._prepare_generator(generator, text, with_context, diagnostics)

        output: List[str] = []
        lines_written = 0
        pending = PendingDocBlock()
        type_name = ""
        modified = False
        cursor = Cursor(text)

        while True:
            token = self.classifier.classify(cursor)
            if token.kind is TokenKind.END_OF_INPUT:
                output.append(pending.text)
                break

            if token.kind is TokenKind.TYPE_DECLARATION:
                type_name = token.type_name or type_name

            signature = None
            if token.kind is TokenKind.SIGNATURE_HEADER:
                signature = decompose(token.text, is_constructor=token.is_constructor)
            if token.kind is TokenKind.SIGNATURE_HEADER and signature is None:
                token = self._first_line(text, token)
                diagnostics.append(
                    Diagnostic(
                        Severity.INFO,
                        f"unrecognized signature handled as code: {token.text.strip()}",
                        lines_written + _count_lines(pending.text) + 1,
                    )
                )

            if signature is None:
                pending, emitted = fold_token(pending, token, rebuild=rebuild)
                output.append(emitted)
                lines_written += _count_lines(emitted)
                cursor = cursor.advance_to(token.end)
                continue

            body_start, body_end = find_function_body(text, token.brace_pos)
            block = pending_for_signature(pending, rebuild=rebuild)
            analysis = analyze(signature, block.text, _leading_whitespace(token.text), newline)
            if analysis.needs_write and generator is not None:
                analysis = self._generate(
                    generator, analysis, token.text, type_name, text[body_start:body_end], newline
                )

            lines_written += _count_lines(analysis.text)
            diagnostics.extend(item.at(lines_written + 1) for item in analysis.diagnostics)
            emitted = analysis.text + text[token.start : body_end]
            output.append(emitted)
            lines_written += _count_lines(text[token.start : body_end])
            modified = modified or analysis.needs_write
            pending = PendingDocBlock()
            cursor = cursor.advance_to(max(body_end, token.end))

        return PatchResult("".join(output), diagnostics, modified)

    def _generate(
        self,
        generator: ProseGenerator,
        analysis: DocAnalysis,
        header: str,
        type_name: str,
        body: str,
        newline: str,
    ) -> DocAnalysis:
        try:
            prose = generator.generate(header, type_name, self.dialect.language, body)
        except Exception as exc:
            logger.debug("Prose generation failed for %s: %s", analysis.name, exc)
            failure = Diagnostic(Severity.WARNING, f"{analysis.name} - prose generation failed: {exc}")
            return DocAnalysis(analysis.name, analysis.text, True, analysis.diagnostics + [failure])
        merged = merge_doc_header(analysis.text, prose, newline)
        note = Diagnostic(Severity.WARNING, f"{analysis.name} - generated by language model")
        return DocAnalysis(analysis.name, merged, True, [note])

    @staticmethod
    def _prepare_generator(
        generator: ProseGenerator, text: str, with_context: bool, diagnostics: List[Diagnostic]
    ) -> None:
        reset = getattr(generator, "reset", None)
        if callable(reset):
            reset()
        set_context = getattr(generator, "set_context", None)
        if not with_context or not callable(set_context):
            return
        try:
            acknowledged = set_context(text)
        except Exception as exc:
            diagnostics.append(Diagnostic(Severity.WARNING, f"file context not sent: {exc}"))
            return
        if not acknowledged:
            diagnostics.append(
                Diagnostic(Severity.WARNING, "file context was not acknowledged by the language model")
            )

    @staticmethod
    def _first_line(text: str, token: Token) -> Token:
        match = patterns.GENERIC_LINE.match(text, token.start)
        end = match.end() if match and match.end() > token.start else len(text)
        return Token(TokenKind.GENERIC_LINE, text[token.start : end], token.start, end)


def patch_text(
    text: str,
    dialect: Dialect,
    *,
    rebuild: bool = False,
    prose_generator: Optional[ProseGenerator] = None,
) -> PatchResult:
    """Convenience wrapper running a single :class:`SourcePatcher` pass."""
    patcher = SourcePatcher(dialect, prose_generator)
    return patcher.patch(text, rebuild=rebuild, use_llm=prose_generator is not None)
