"""Prompt construction and the language-model backed prose generator."""

from __future__ import annotations

import re
from typing import List, Optional, Protocol, runtime_checkable

from ..logging import get_logger
from .runner import LLMRunner, Message

DEFAULT_PROMPT = (
    "Please provide your best effort, in **English**, adhering to the rules for "
    "this method written in '{LANG}':"
)
DEFAULT_PROMPT_WITH_CLASS = (
    "Please provide your best effort, in **English**, adhering to the rules for "
    "this '{CLASS}' class method written in '{LANG}':"
)

CONTEXT_BEGIN = "@@@begin_ctx@@@"
CONTEXT_END = "@@@end_ctx@@@"

_COMMENT_BAR = re.compile(r"^\s*/\*+.*?\*/\s*\*?\s*[\r\n]*$", re.MULTILINE)
_LINE_NOISE = re.compile(r"[\t\r\n]")

logger = get_logger("llm.prose")


@runtime_checkable
class ProseGenerator(Protocol):
    """Produces Doxygen prose for one function."""

    def generate(self, signature_text: str, type_name: str, language: str, body: str) -> str:
        ...


def clean_signature(text: str) -> str:
    """Drop comment bars, tabs and line breaks from a header; strip a trailing ``{``."""
    text = _COMMENT_BAR.sub("", text)
    text = _LINE_NOISE.sub("", text)
    return text.strip().rstrip("{").rstrip()


def build_prompt(
    signature_text: str,
    type_name: str,
    language: str,
    body: str,
    *,
    prompt: str = DEFAULT_PROMPT,
    prompt_with_class: str = DEFAULT_PROMPT_WITH_CLASS,
) -> str:
    template = prompt_with_class if type_name else prompt
    header = template.replace("{LANG}", language).replace("{CLASS}", type_name)
    return f"{header}\nCode:\n{clean_signature(signature_text)}\n{body}\n"


class LLMProseGenerator:
    """Asks a local model for ``/// @tag`` prose describing a function.

    A context established with :meth:`set_context` is replayed before every
    prompt until :meth:`reset` is called.
    """

    def __init__(
        self,
        runner: LLMRunner,
        *,
        prompt: Optional[str] = None,
        prompt_with_class: Optional[str] = None,
    ) -> None:
        self.runner = runner
        self.prompt = prompt or DEFAULT_PROMPT
        self.prompt_with_class = prompt_with_class or DEFAULT_PROMPT_WITH_CLASS
        self._history: List[Message] = []

    @property
    def history(self) -> List[Message]:
        return list(self._history)

    def reset(self) -> None:
        self._history = []

    def set_context(self, file_text: str) -> bool:
        """Send a whole file as background; True when the model acknowledges it."""
        message = f"{CONTEXT_BEGIN}\n\n{file_text}\n\n{CONTEXT_END}"
        reply = self.runner.run(message)
        if "done" not in reply.lower():
            logger.debug("Model did not acknowledge the file context: %r", reply[:80])
            self._history = []
            return False
        self._history = [
            {"role": "user", "content": message},
            {"role": "assistant", "content": reply},
        ]
        return True

    def generate(self, signature_text: str, type_name: str, language: str, body: str) -> str:
        query = build_prompt(
            signature_text,
            type_name,
            language,
            body,
            prompt=self.prompt,
            prompt_with_class=self.prompt_with_class,
        )
        logger.debug("Requesting prose for %s", clean_signature(signature_text))
        return self.runner.run(query, history=self._history)
