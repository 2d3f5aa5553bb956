"""Tests for Modelfile synchronisation."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from doxypatch.llm.modelfiles import ModelfileState, sync_modelfiles


class RecordingModelRunner:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def remove_model(self, name: str) -> None:
        self.calls.append(("rm", name))

    def create_model(self, name: str, modelfile: Path) -> None:
        self.calls.append(("create", name))


def _write_models(directory: Path) -> None:
    directory.mkdir()
    (directory / "doxypatch").write_text("FROM llama3\nSYSTEM You write Doxygen.\n", encoding="utf-8")
    (directory / "README.md").write_text("not a Modelfile\n", encoding="utf-8")


def test_sync_builds_every_model_on_first_run(tmp_path: Path) -> None:
    models = tmp_path / "models"
    _write_models(models)
    runner = RecordingModelRunner()
    state_path = tmp_path / ".doxypatch" / "modelfiles.json"

    rebuilt = sync_modelfiles(models, runner, state_path)  # type: ignore[arg-type]

    assert rebuilt == ["doxypatch"]
    assert runner.calls == [("rm", "doxypatch"), ("create", "doxypatch")]
    payload = json.loads(state_path.read_text(encoding="utf-8"))
    assert payload["version"] == 1
    assert len(payload["entries"]["doxypatch"]["sha256"]) == 64


def test_sync_skips_unchanged_and_rebuilds_changed_models(tmp_path: Path) -> None:
    models = tmp_path / "models"
    _write_models(models)
    state_path = tmp_path / "state.json"
    sync_modelfiles(models, RecordingModelRunner(), state_path)  # type: ignore[arg-type]

    runner = RecordingModelRunner()
    assert sync_modelfiles(models, runner, state_path) == []  # type: ignore[arg-type]
    assert runner.calls == []

    (models / "doxypatch").write_text("FROM llama3\nSYSTEM Be brief.\n", encoding="utf-8")
    assert sync_modelfiles(models, runner, state_path) == ["doxypatch"]  # type: ignore[arg-type]


def test_state_ignores_corrupt_file(tmp_path: Path) -> None:
    state_path = tmp_path / "state.json"
    state_path.write_text("{not json", encoding="utf-8")

    state = ModelfileState(state_path)

    assert state.get("doxypatch") is None


def test_sync_requires_existing_directory(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        sync_modelfiles(tmp_path / "missing", RecordingModelRunner(), None)  # type: ignore[arg-type]
