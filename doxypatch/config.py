"""Configuration loading for doxypatch (.doxypatch.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .parsing.dialects import SUPPORTED_EXTENSIONS

CONFIG_FILENAME = ".doxypatch.yml"
DEFAULT_MODEL = "doxypatch:latest"
DEFAULT_CONTEXT_MODEL = "doxypatch-with-context:latest"
DEFAULT_BACKUP_SUFFIX = ".doxy.bak"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class LLMConfig:
    """Language-model settings from .doxypatch.yml."""

    runner: Optional[str] = None
    model: str = DEFAULT_MODEL
    context_model: str = DEFAULT_CONTEXT_MODEL
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    request_timeout: Optional[float] = None
    prompt: Optional[str] = None
    prompt_with_class: Optional[str] = None
    modelfiles_dir: Optional[Path] = None


@dataclass
class DoxyPatchConfig:
    """Represents the settings defined in .doxypatch.yml."""

    root: Path
    llm: LLMConfig = field(default_factory=LLMConfig)
    extensions: List[str] = field(default_factory=lambda: list(SUPPORTED_EXTENSIONS))
    exclude_dirs: List[str] = field(default_factory=list)
    exclude_paths: List[str] = field(default_factory=list)
    delay: float = 0.0
    backup_suffix: str = DEFAULT_BACKUP_SUFFIX


def load_config(config_path: Path) -> DoxyPatchConfig:
    """Load configuration from disk; a missing file yields the defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return DoxyPatchConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    llm_data = _as_dict(data.get("llm"))
    modelfiles_dir = _as_str(llm_data.get("modelfiles_dir"))
    llm = LLMConfig(
        runner=_as_str(llm_data.get("runner")),
        model=_as_str(llm_data.get("model")) or DEFAULT_MODEL,
        context_model=_as_str(llm_data.get("context_model")) or DEFAULT_CONTEXT_MODEL,
        temperature=_as_float(llm_data.get("temperature")),
        max_tokens=_as_int(llm_data.get("max_tokens")),
        base_url=_as_str(llm_data.get("base_url")),
        api_key=_as_str(llm_data.get("api_key")),
        request_timeout=_as_float(llm_data.get("request_timeout")),
        prompt=_as_str(llm_data.get("prompt")),
        prompt_with_class=_as_str(llm_data.get("prompt_with_class")),
        modelfiles_dir=root / modelfiles_dir if modelfiles_dir else None,
    )

    extensions = [_normalize_extension(item) for item in _as_str_list(data.get("extensions"))]
    unknown = sorted(set(extensions) - set(SUPPORTED_EXTENSIONS))
    if unknown:
        raise ConfigError(f"Unsupported extensions in {CONFIG_FILENAME}: {', '.join(unknown)}")

    delay = _as_float(data.get("delay"))
    if delay is not None and delay < 0:
        raise ConfigError("delay must not be negative")

    return DoxyPatchConfig(
        root=root,
        llm=llm,
        extensions=extensions or list(SUPPORTED_EXTENSIONS),
        exclude_dirs=_as_str_list(data.get("exclude_dirs")),
        exclude_paths=_as_str_list(data.get("exclude_paths")),
        delay=delay or 0.0,
        backup_suffix=_as_str(data.get("backup_suffix")) or DEFAULT_BACKUP_SUFFIX,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.suffix not in {".yml", ".yaml"}:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _normalize_extension(value: str) -> str:
    value = value.strip().lower()
    return value if value.startswith(".") else f".{value}"


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []
