"""CLI entrypoint for doxypatch."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import ConfigError, DoxyPatchConfig, load_config
from .llm.modelfiles import sync_modelfiles
from .logging import configure_logging, get_logger
from .orchestrator import Orchestrator, RunInProgressError, build_runner

_MODELFILE_STATE = Path(".doxypatch") / "modelfiles.json"


def _add_verbose_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Increase log verbosity for troubleshooting.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="doxypatch",
        description="Add and check Doxygen headers in C, C++ and C# sources.",
    )
    _add_verbose_option(parser)
    parser.add_argument("path", help="Source file or directory to process.")
    parser.add_argument(
        "-r",
        "--recursive",
        action="store_true",
        help="Descend into subdirectories.",
    )
    parser.add_argument(
        "-o",
        "--ollama",
        action="store_true",
        help="Fill new headers with prose from the local language model.",
    )
    parser.add_argument(
        "-b",
        "--rebuild",
        action="store_true",
        help="Discard existing headers and generate them again.",
    )
    parser.add_argument(
        "-c",
        "--with-context",
        action="store_true",
        help="Send each whole file to the model before documenting its functions.",
    )
    parser.add_argument(
        "-m",
        "--dry-mode",
        action="store_true",
        help="Report diagnostics without writing any file.",
    )
    parser.add_argument(
        "-d",
        "--delay",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Pause between processed files (defaults to the configured delay).",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write log records to this file.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a .doxypatch.yml file (defaults to the one next to PATH).",
    )
    return parser


def _prepare_model(config: DoxyPatchConfig, *, with_context: bool) -> str | None:
    """Check the model runtime and sync Modelfiles; return an error message on failure."""
    runner = build_runner(config.llm, with_context=with_context)
    if not runner.is_available():
        return "Ollama server offline"
    modelfiles_dir = config.llm.modelfiles_dir
    if modelfiles_dir is not None:
        rebuilt = sync_modelfiles(modelfiles_dir, runner, config.root / _MODELFILE_STATE)
        if rebuilt:
            get_logger("cli").info("Rebuilt model(s): %s", ", ".join(rebuilt))
    return None


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for doxypatch."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    if args.delay is not None and args.delay < 0:
        parser.exit(1, "--delay must not be negative\n")

    try:
        config = load_config(Path(args.config) if args.config else Path(args.path))
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")

    if args.ollama:
        try:
            problem = _prepare_model(config, with_context=bool(args.with_context))
        except (RuntimeError, OSError) as exc:
            parser.exit(1, f"doxypatch model setup failed: {exc}\n")
        if problem:
            parser.exit(1, f"{problem}\n")

    orchestrator = Orchestrator(config)
    try:
        report = orchestrator.run(
            args.path,
            recursive=bool(args.recursive),
            use_llm=bool(args.ollama),
            rebuild=bool(args.rebuild),
            dry_run=bool(args.dry_mode),
            with_context=bool(args.with_context),
            delay=args.delay,
        )
    except FileNotFoundError as exc:
        parser.exit(1, f"{exc}\n")
    except RunInProgressError as exc:
        parser.exit(1, f"{exc}\n")
    except (RuntimeError, OSError) as exc:
        parser.exit(1, f"doxypatch failed: {exc}\nRun with --verbose for more details.\n")

    written = sum(1 for item in report.files if item.written)
    print(
        f"{report.error_count} error(s), {report.warning_count} warning(s), "
        f"{written} file(s) updated"
    )
    if report.has_errors:
        sys.exit(1)


if __name__ == "__main__":
    main(sys.argv[1:])
