"""Source file discovery with directory markers and ignore rules."""

from __future__ import annotations

import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterable, Iterator, List, Sequence

from .logging import get_logger

IGNORE_MARKER = ".doxypatch_ignore"

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".vs",
    "node_modules",
    "__pycache__",
    ".doxypatch",
}

logger = get_logger("scanner")


@dataclass
class IgnoreRule:
    """Represents a gitignore-style exclusion from .doxypatch.yml."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            return self.directory_only and rel_path.startswith(f"{self.pattern}/")

        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def build_ignore_rule(pattern: str) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern or pattern.startswith("#"):
        return None

    negate = pattern.startswith("!")
    if negate:
        pattern = pattern[1:]

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash="/" in pattern,
    )


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


class SourceScanner:
    """Lists the files a run should visit under a file or directory argument."""

    def __init__(
        self,
        *,
        exclude_dirs: Iterable[str] = (),
        exclude_paths: Iterable[str] = (),
    ) -> None:
        self.exclude_dirs = _EXCLUDED_DIRS | set(exclude_dirs)
        self.rules: List[IgnoreRule] = [
            rule for rule in map(build_ignore_rule, exclude_paths) if rule is not None
        ]

    def scan(self, path: Path | str, *, recursive: bool = False) -> List[Path]:
        """Return the files under ``path`` in a stable order."""
        target = Path(path).expanduser().resolve()
        if not target.exists():
            raise FileNotFoundError(f"Path not found: {path}")
        if target.is_file():
            return [target]
        return list(self._iter_files(target, recursive))

    def _iter_files(self, root: Path, recursive: bool) -> Iterator[Path]:
        for dirpath, dirnames, filenames in os.walk(root):
            current_dir = Path(dirpath)
            if IGNORE_MARKER in filenames:
                logger.debug("Skipping %s (%s present)", current_dir, IGNORE_MARKER)
                dirnames[:] = []
                continue

            rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""
            if recursive:
                kept = []
                for name in sorted(dirnames):
                    rel_path = f"{rel_dir}/{name}" if rel_dir else name
                    if name in self.exclude_dirs or _should_ignore(rel_path, True, self.rules):
                        continue
                    kept.append(name)
                dirnames[:] = kept
            else:
                dirnames[:] = []

            for filename in sorted(filenames):
                rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
                if _should_ignore(rel_path, False, self.rules):
                    continue
                yield current_dir / filename
