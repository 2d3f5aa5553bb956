"""Tests for doxypatch.orchestrator."""

from __future__ import annotations

from pathlib import Path

import pytest

from doxypatch.config import DoxyPatchConfig, LLMConfig
from doxypatch.models import Severity
from doxypatch.orchestrator import Orchestrator, RunGuard, RunInProgressError, build_runner

_UNDOCUMENTED = """
int add(int a, int b)
{
    return a + b;
}
"""

_DOCUMENTED = """
/// @brief Adds.
///
/// @param a Left.
/// @param b Right.
/// @retval Sum.
int add(int a, int b)
{
    return a + b;
}
"""


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class CannedProseGenerator:
    def __init__(self, prose: str) -> None:
        self.prose = prose
        self.calls = 0

    def generate(self, signature_text: str, type_name: str, language: str, body: str) -> str:
        self.calls += 1
        return self.prose


def _orchestrator(root: Path, **kwargs) -> Orchestrator:
    config = DoxyPatchConfig(root=root, **kwargs)
    return Orchestrator(config, sleep=RecordingSleep())


def test_run_writes_patched_file_and_backup(source_tree) -> None:
    source_tree.write({"math.cpp": _UNDOCUMENTED})
    orchestrator = _orchestrator(source_tree.path())

    report = orchestrator.run(source_tree.path())

    assert report.error_count == 1
    assert report.has_errors is True
    [item] = report.files
    assert item.written is True
    assert report.modified_files == [source_tree.path("math.cpp").resolve()]
    assert source_tree.read("math.cpp").startswith("/// @brief\n///\n/// @param a\n")
    assert source_tree.read("math.cpp.doxy.bak") == _UNDOCUMENTED.lstrip("\n")


def test_existing_backup_is_replaced(source_tree) -> None:
    source_tree.write({"math.cpp": _UNDOCUMENTED, "math.cpp.doxy.bak": "stale\n"})

    _orchestrator(source_tree.path()).run(source_tree.path("math.cpp"))

    assert source_tree.read("math.cpp.doxy.bak") == _UNDOCUMENTED.lstrip("\n")


def test_dry_run_leaves_files_untouched(source_tree) -> None:
    source_tree.write({"math.cpp": _UNDOCUMENTED})

    report = _orchestrator(source_tree.path()).run(source_tree.path(), dry_run=True)

    assert report.files[0].modified is True
    assert report.files[0].written is False
    assert source_tree.read("math.cpp") == _UNDOCUMENTED.lstrip("\n")
    assert not source_tree.path("math.cpp.doxy.bak").exists()


def test_documented_file_is_not_rewritten(source_tree) -> None:
    source_tree.write({"math.cpp": _DOCUMENTED})

    report = _orchestrator(source_tree.path()).run(source_tree.path())

    assert report.error_count == 0
    assert report.warning_count == 0
    assert report.modified_files == []
    assert not source_tree.path("math.cpp.doxy.bak").exists()


def test_unsupported_files_are_skipped_without_delay(source_tree) -> None:
    source_tree.write(
        {
            "a.cpp": _DOCUMENTED,
            "b.txt": "notes\n",
            "c.h": _DOCUMENTED,
            "d.cs": "class D {}\n",
        }
    )
    orchestrator = _orchestrator(source_tree.path(), extensions=[".cpp", ".h"], delay=0.5)

    report = orchestrator.run(source_tree.path())

    assert [(item.path.name, item.skipped) for item in report.files] == [
        ("a.cpp", False),
        ("b.txt", True),
        ("c.h", False),
        ("d.cs", True),
    ]
    assert report.files[1].diagnostics[0].severity is Severity.INFO
    assert orchestrator.sleep.calls == [0.5]


def test_delay_argument_overrides_configuration(source_tree) -> None:
    source_tree.write({"a.cpp": _DOCUMENTED, "b.cpp": _DOCUMENTED, "c.cpp": _DOCUMENTED})
    orchestrator = _orchestrator(source_tree.path(), delay=3.0)

    orchestrator.run(source_tree.path(), delay=0.25)

    assert orchestrator.sleep.calls == [0.25, 0.25]


def test_latin1_sources_keep_their_encoding(source_tree) -> None:
    path = source_tree.path("legacy.cpp")
    original = "// caf\xe9\nvoid run()\n{\n}\n".encode("latin-1")
    path.write_bytes(original)

    _orchestrator(source_tree.path()).run(path)

    assert path.read_bytes() == b"// caf\xe9\n/// @brief\n///\nvoid run()\n{\n}\n"
    assert source_tree.path("legacy.cpp.doxy.bak").read_bytes() == original


def test_injected_prose_generator_is_used_with_llm(source_tree) -> None:
    source_tree.write({"math.cpp": _UNDOCUMENTED})
    generator = CannedProseGenerator("/// @brief Adds two numbers.")
    orchestrator = Orchestrator(DoxyPatchConfig(root=source_tree.path()), generator)

    report = orchestrator.run(source_tree.path(), use_llm=True)

    assert generator.calls == 1
    assert report.error_count == 0
    assert [d.message for d in report.files[0].warnings] == ["add - generated by language model"]
    assert source_tree.read("math.cpp").startswith("/// @brief Adds two numbers.\n")


class StalledProseGenerator:
    def generate(self, signature_text: str, type_name: str, language: str, body: str) -> str:
        raise TimeoutError("timed out")


def test_stalled_model_falls_back_to_skeletons_for_every_file(source_tree) -> None:
    source_tree.write({"a.cpp": _UNDOCUMENTED, "b.cpp": _UNDOCUMENTED})
    orchestrator = Orchestrator(DoxyPatchConfig(root=source_tree.path()), StalledProseGenerator())

    report = orchestrator.run(source_tree.path(), use_llm=True, dry_run=True)

    assert [item.path.name for item in report.files] == ["a.cpp", "b.cpp"]
    for item in report.files:
        assert item.modified is True
        assert [d.message for d in item.warnings] == ["add - prose generation failed: timed out"]


class BrokenResetGenerator(CannedProseGenerator):
    def reset(self) -> None:
        raise ValueError("session state corrupted")


def test_unexpected_patch_failure_is_reported_per_file(source_tree) -> None:
    source_tree.write({"a.cpp": _UNDOCUMENTED, "b.cpp": _UNDOCUMENTED})
    orchestrator = Orchestrator(DoxyPatchConfig(root=source_tree.path()), BrokenResetGenerator(""))

    report = orchestrator.run(source_tree.path(), use_llm=True)

    assert [(item.path.name, item.skipped) for item in report.files] == [
        ("a.cpp", True),
        ("b.cpp", True),
    ]
    assert report.files[0].errors[0].message == "unable to process file: session state corrupted"
    assert source_tree.read("a.cpp") == _UNDOCUMENTED.lstrip("\n")


def test_failed_write_restores_original(source_tree, monkeypatch) -> None:
    source_tree.write({"math.cpp": _UNDOCUMENTED})

    def full_disk(self, data):
        raise OSError("No space left on device")

    monkeypatch.setattr(Path, "write_bytes", full_disk)

    report = _orchestrator(source_tree.path()).run(source_tree.path())

    [item] = report.files
    assert item.written is False
    assert item.errors[-1].message == "unable to write file: No space left on device"
    assert source_tree.read("math.cpp") == _UNDOCUMENTED.lstrip("\n")
    assert not source_tree.path("math.cpp.doxy.bak").exists()


def test_byte_order_mark_is_kept_and_first_line_recognized(source_tree) -> None:
    path = source_tree.path("Widget.cs")
    path.write_bytes(b"\xef\xbb\xbfpublic void Run()\n{\n}\n")

    report = _orchestrator(source_tree.path()).run(path)

    assert report.files[0].written is True
    assert path.read_bytes() == b"\xef\xbb\xbf/// @brief\n///\npublic void Run()\n{\n}\n"


def test_missing_path_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        _orchestrator(tmp_path).run(tmp_path / "absent.cpp")


def test_run_guard_rejects_concurrent_runs() -> None:
    guard = RunGuard()

    with guard:
        assert guard.active is True
        with pytest.raises(RunInProgressError):
            with guard:
                pass
    assert guard.active is False


def test_build_runner_picks_context_model() -> None:
    llm_cfg = LLMConfig(runner="ollama", base_url="http://localhost:11434/v1", temperature=0.2)

    plain = build_runner(llm_cfg)
    with_context = build_runner(llm_cfg, with_context=True)

    assert plain.model == "doxypatch:latest"
    assert with_context.model == "doxypatch-with-context:latest"
    assert plain.executable == "ollama"
    assert plain.temperature == pytest.approx(0.2)
