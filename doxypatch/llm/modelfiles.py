"""Keeps local models in step with the Modelfiles that define them."""

from __future__ import annotations

import hashlib
import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Dict, List, Optional

from ..logging import get_logger
from .runner import LLMRunner

_STATE_VERSION = 1

logger = get_logger("llm.modelfiles")


def _hash_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


class ModelfileState:
    """Last known SHA-256 of every Modelfile, persisted as JSON."""

    def __init__(self, path: Path | None) -> None:
        self._path = path
        self._entries: Dict[str, Dict[str, str]] = {}
        self._dirty = False
        if self._path is not None:
            self._load(self._path)

    def get(self, name: str) -> Optional[str]:
        entry = self._entries.get(name)
        if not entry:
            return None
        return entry.get("sha256")

    def store(self, name: str, digest: str) -> None:
        self._entries[name] = {
            "sha256": digest,
            "updated_at": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        }
        self._dirty = True

    def persist(self) -> None:
        if not self._dirty or self._path is None:
            return
        payload = {"version": _STATE_VERSION, "entries": self._entries}
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        self._dirty = False

    def _load(self, path: Path) -> None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, json.JSONDecodeError):
            logger.warning("Ignoring unreadable Modelfile state at %s", path)
            return
        if not isinstance(data, dict) or data.get("version") != _STATE_VERSION:
            return
        entries = data.get("entries")
        if not isinstance(entries, dict):
            return
        self._entries = {
            key: raw
            for key, raw in entries.items()
            if isinstance(key, str) and isinstance(raw, dict) and isinstance(raw.get("sha256"), str)
        }


def sync_modelfiles(directory: Path, runner: LLMRunner, cache_path: Path | None) -> List[str]:
    """Recreate every model whose Modelfile changed since the last sync.

    Modelfiles are the extension-less files of ``directory``; each file name
    is the model name. Returns the names of the rebuilt models.
    """
    if not directory.is_dir():
        raise FileNotFoundError(f"Modelfile directory not found: {directory}")

    state = ModelfileState(cache_path)
    rebuilt: List[str] = []
    for path in sorted(directory.iterdir()):
        if not path.is_file() or path.suffix:
            continue
        digest = _hash_file(path)
        if state.get(path.name) == digest:
            logger.debug("Model %s is up to date", path.name)
            continue
        logger.info("Rebuilding model %s from %s", path.name, path)
        runner.remove_model(path.name)
        runner.create_model(path.name, path)
        state.store(path.name, digest)
        rebuilt.append(path.name)
    state.persist()
    return rebuilt


__all__ = ["ModelfileState", "sync_modelfiles"]
