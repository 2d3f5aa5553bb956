"""Run orchestration: discover files, patch them and write the results back."""

from __future__ import annotations

import codecs
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .config import DoxyPatchConfig, LLMConfig
from .llm.prose import LLMProseGenerator, ProseGenerator
from .llm.runner import LLMRunner
from .logging import get_logger
from .models import Diagnostic, PatchResult, Severity
from .parsing.dialects import Dialect, dialect_for
from .patcher import SourcePatcher
from .source_scanner import SourceScanner


class RunInProgressError(RuntimeError):
    """Raised when a run is started while another one is still active."""


class RunGuard:
    """Allows one run at a time per orchestrator."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._lock.locked()

    def __enter__(self) -> "RunGuard":
        if not self._lock.acquire(blocking=False):
            raise RunInProgressError("A doxypatch run is already in progress")
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._lock.release()


@dataclass
class FileReport:
    """What happened to one file during a run."""

    path: Path
    diagnostics: List[Diagnostic] = field(default_factory=list)
    modified: bool = False
    written: bool = False
    skipped: bool = False

    @property
    def errors(self) -> List[Diagnostic]:
        return [item for item in self.diagnostics if item.severity is Severity.ERROR]

    @property
    def warnings(self) -> List[Diagnostic]:
        return [item for item in self.diagnostics if item.severity is Severity.WARNING]


@dataclass
class RunReport:
    """Per-file outcomes of a run with severity totals."""

    files: List[FileReport] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return sum(len(report.errors) for report in self.files)

    @property
    def warning_count(self) -> int:
        return sum(len(report.warnings) for report in self.files)

    @property
    def has_errors(self) -> bool:
        return self.error_count > 0

    @property
    def modified_files(self) -> List[Path]:
        return [report.path for report in self.files if report.modified]


def build_runner(llm_cfg: LLMConfig, *, with_context: bool = False) -> LLMRunner:
    """Create the runner described by the ``llm`` section of the configuration."""
    kwargs: Dict[str, object] = {
        "model": llm_cfg.context_model if with_context else llm_cfg.model,
    }
    if llm_cfg.runner:
        kwargs["executable"] = llm_cfg.runner
    if llm_cfg.base_url is not None:
        kwargs["base_url"] = llm_cfg.base_url
    if llm_cfg.temperature is not None:
        kwargs["temperature"] = llm_cfg.temperature
    if llm_cfg.max_tokens is not None:
        kwargs["max_tokens"] = llm_cfg.max_tokens
    if llm_cfg.api_key is not None:
        kwargs["api_key"] = llm_cfg.api_key
    if llm_cfg.request_timeout is not None:
        kwargs["request_timeout"] = llm_cfg.request_timeout
    return LLMRunner(**kwargs)  # type: ignore[arg-type]


def _read_source(path: Path) -> Tuple[str, str]:
    raw = path.read_bytes()
    if raw.startswith(codecs.BOM_UTF8):
        return raw.decode("utf-8-sig"), "utf-8-sig"
    try:
        return raw.decode("utf-8"), "utf-8"
    except UnicodeDecodeError:
        return raw.decode("latin-1"), "latin-1"


class Orchestrator:
    """Coordinates scanning, patching and backup-writing for a run."""

    def __init__(
        self,
        config: DoxyPatchConfig | None = None,
        prose_generator: Optional[ProseGenerator] = None,
        sleep: Callable[[float], None] = time.sleep,
        scanner: SourceScanner | None = None,
    ) -> None:
        self.config = config or DoxyPatchConfig(root=Path.cwd())
        self.prose_generator = prose_generator
        self.sleep = sleep
        self.scanner = scanner or SourceScanner(
            exclude_dirs=self.config.exclude_dirs,
            exclude_paths=self.config.exclude_paths,
        )
        self.guard = RunGuard()
        self.logger = get_logger("orchestrator")
        self._patchers: Dict[str, SourcePatcher] = {}

    def run(
        self,
        path: Path | str,
        *,
        recursive: bool = False,
        use_llm: bool = False,
        rebuild: bool = False,
        dry_run: bool = False,
        with_context: bool = False,
        delay: float | None = None,
    ) -> RunReport:
        """Patch every supported file under ``path`` and report the diagnostics."""
        with self.guard:
            cooldown = self.config.delay if delay is None else delay
            generator = self._resolve_prose_generator(use_llm, with_context)
            self._patchers = {}
            report = RunReport()
            files = self.scanner.scan(path, recursive=recursive)
            self.logger.debug("Scanner found %d file(s) under %s", len(files), path)

            previous_processed = False
            for file_path in files:
                dialect = self._dialect_for(file_path)
                if dialect is None:
                    self.logger.debug("%s: unsupported file type, skipped", file_path)
                    note = Diagnostic(Severity.INFO, "unsupported file type, skipped")
                    report.files.append(FileReport(file_path, [note], skipped=True))
                    continue

                if previous_processed and cooldown > 0:
                    self.logger.debug("Cooling down for %.1f second(s)", cooldown)
                    self.sleep(cooldown)

                report.files.append(
                    self._process_file(
                        file_path,
                        self._patcher_for(dialect, generator),
                        use_llm=generator is not None,
                        rebuild=rebuild,
                        dry_run=dry_run,
                        with_context=with_context,
                    )
                )
                previous_processed = True

            self.logger.info(
                "Checked %d file(s): %d error(s), %d warning(s)",
                sum(1 for item in report.files if not item.skipped),
                report.error_count,
                report.warning_count,
            )
            return report

    def _process_file(
        self,
        path: Path,
        patcher: SourcePatcher,
        *,
        use_llm: bool,
        rebuild: bool,
        dry_run: bool,
        with_context: bool,
    ) -> FileReport:
        self.logger.info("Processing %s", path)
        try:
            text, encoding = _read_source(path)
        except OSError as exc:
            self.logger.error("%s: unable to read file: %s", path, exc)
            failure = Diagnostic(Severity.ERROR, f"unable to read file: {exc}")
            return FileReport(path, [failure], skipped=True)

        try:
            result = patcher.patch(text, rebuild=rebuild, use_llm=use_llm, with_context=with_context)
        except Exception as exc:
            self.logger.error("%s: unable to process file: %s", path, exc)
            failure = Diagnostic(Severity.ERROR, f"unable to process file: {exc}")
            return FileReport(path, [failure], skipped=True)
        self._log_diagnostics(path, result)
        report = FileReport(path, list(result.diagnostics), modified=result.modified)
        if not result.modified or dry_run:
            return report

        try:
            self._write_with_backup(path, result.text, encoding)
        except (OSError, UnicodeEncodeError) as exc:
            self.logger.error("%s: unable to write file: %s", path, exc)
            report.diagnostics.append(Diagnostic(Severity.ERROR, f"unable to write file: {exc}"))
            return report
        report.written = True
        self.logger.info("Updated %s", path)
        return report

    def _write_with_backup(self, path: Path, text: str, encoding: str) -> None:
        data = text.encode(encoding)
        backup = path.with_name(path.name + self.config.backup_suffix)
        if backup.exists():
            backup.unlink()
        path.rename(backup)
        try:
            path.write_bytes(data)
        except OSError:
            # the original must survive a failed write
            backup.replace(path)
            raise

    def _log_diagnostics(self, path: Path, result: PatchResult) -> None:
        for item in result.diagnostics:
            if item.severity is Severity.ERROR:
                self.logger.error("%s:%d %s", path, item.line, item.message)
            elif item.severity is Severity.WARNING:
                self.logger.warning("%s:%d %s", path, item.line, item.message)
            else:
                self.logger.info("%s:%d %s", path, item.line, item.message)

    def _dialect_for(self, path: Path) -> Optional[Dialect]:
        if path.suffix.lower() not in self.config.extensions:
            return None
        return dialect_for(path)

    def _patcher_for(self, dialect: Dialect, generator: Optional[ProseGenerator]) -> SourcePatcher:
        patcher = self._patchers.get(dialect.name)
        if patcher is None:
            patcher = SourcePatcher(dialect, generator)
            self._patchers[dialect.name] = patcher
        return patcher

    def _resolve_prose_generator(self, use_llm: bool, with_context: bool) -> Optional[ProseGenerator]:
        if not use_llm:
            return None
        if self.prose_generator is not None:
            return self.prose_generator
        llm_cfg = self.config.llm
        return LLMProseGenerator(
            build_runner(llm_cfg, with_context=with_context),
            prompt=llm_cfg.prompt,
            prompt_with_class=llm_cfg.prompt_with_class,
        )
