"""Local LLM runner adapters and prose generation."""

from .modelfiles import ModelfileState, sync_modelfiles
from .prose import LLMProseGenerator, ProseGenerator
from .runner import LLMRunner

__all__ = [
    "LLMProseGenerator",
    "LLMRunner",
    "ModelfileState",
    "ProseGenerator",
    "sync_modelfiles",
]
