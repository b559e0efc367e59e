"""Source root walking: directories and zip archives of Python modules."""

from __future__ import annotations

import os
import zipfile
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterator, List, Sequence

from .errors import ConfigurationError
from .logging import get_logger

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "venv",
    ".tox",
    ".nox",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".ruff_cache",
    ".idea",
    "build",
    "dist",
}

_ARCHIVE_SUFFIXES = {".zip", ".whl"}

logger = get_logger("source_scanner")


@dataclass
class IgnoreRule:
    """Represents an ignore rule parsed from .gitignore or .schemagen.yml."""

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

        target = rel_path
        if self.anchored or self.has_slash:
            if fnmatchcase(target, self.pattern):
                return True
            if self.directory_only and target.startswith(f"{self.pattern}/"):
                return True
            return False

        for part in target.split("/"):
            if fnmatchcase(part, self.pattern):
                return True
        return False


@dataclass(frozen=True)
class SourceFile:
    """One Python module found under a source root."""

    root: str
    path: str
    module: str
    text: str


def build_ignore_rule(pattern: str, negate: bool = False) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    has_slash = "/" in pattern
    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash=has_slash,
    )


def _parse_gitignore(path: Path) -> List[IgnoreRule]:
    if not path.exists():
        return []

    rules: List[IgnoreRule] = []
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        rule = build_ignore_rule(line, negate=negate)
        if rule is not None:
            rules.append(rule)
    return rules


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


def module_name(rel_path: str) -> str:
    """Return the dotted module name for a root-relative ``.py`` path."""
    parts = rel_path[: -len(".py")].split("/")
    if parts[-1] == "__init__":
        parts = parts[:-1]
    return ".".join(parts)


def _iter_directory(root: Path, rules: Sequence[IgnoreRule]) -> Iterator[str]:
    for dirpath, dirnames, filenames in os.walk(root):
        current_dir = Path(dirpath)
        rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

        filtered_dirs = []
        for name in sorted(dirnames):
            if name in _EXCLUDED_DIRS or name.endswith(".egg-info"):
                continue
            rel_path = f"{rel_dir}/{name}" if rel_dir else name
            if _should_ignore(rel_path, True, rules):
                continue
            filtered_dirs.append(name)
        dirnames[:] = filtered_dirs

        for filename in sorted(filenames):
            if not filename.endswith(".py"):
                continue
            rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
            if _should_ignore(rel_path, False, rules):
                continue
            yield rel_path


def _is_excluded_member(rel_path: str, rules: Sequence[IgnoreRule]) -> bool:
    parts = rel_path.split("/")
    for index in range(1, len(parts)):
        if parts[index - 1] in _EXCLUDED_DIRS:
            return True
        if _should_ignore("/".join(parts[:index]), True, rules):
            return True
    return _should_ignore(rel_path, False, rules)


class SourceScanner:
    """Walks source roots to produce the Python modules they contain."""

    def __init__(self, exclude_paths: Sequence[str] = ()) -> None:
        self._exclude_rules = [
            rule for rule in (build_ignore_rule(pattern) for pattern in exclude_paths) if rule
        ]

    def scan(self, roots: Sequence[str | Path]) -> List[SourceFile]:
        """Return modules from every root, ordered by module name then root order."""
        if not roots:
            raise ConfigurationError("At least one source root is required")

        files: List[tuple[str, int, SourceFile]] = []
        for position, root in enumerate(roots):
            root_path = Path(root).expanduser().resolve()
            if not root_path.exists():
                raise ConfigurationError(f"Source root not found: {root}")
            if root_path.is_dir():
                found = list(self._scan_directory(root_path))
            elif root_path.suffix.lower() in _ARCHIVE_SUFFIXES and zipfile.is_zipfile(root_path):
                found = list(self._scan_archive(root_path))
            else:
                raise ConfigurationError(
                    f"Source root is neither a directory nor a zip archive: {root}"
                )
            logger.debug("Found %d module(s) under %s", len(found), root_path)
            files.extend((source.module, position, source) for source in found)

        files.sort(key=lambda item: (item[0], item[1]))
        return [source for _, _, source in files]

    def _scan_directory(self, root: Path) -> Iterator[SourceFile]:
        rules = _parse_gitignore(root / ".gitignore") + self._exclude_rules
        for rel_path in _iter_directory(root, rules):
            try:
                text = (root / rel_path).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Skipping unreadable module %s: %s", rel_path, exc)
                continue
            yield SourceFile(root=str(root), path=rel_path, module=module_name(rel_path), text=text)

    def _scan_archive(self, root: Path) -> Iterator[SourceFile]:
        try:
            archive = zipfile.ZipFile(root)
        except (OSError, zipfile.BadZipFile) as exc:
            raise ConfigurationError(f"Unable to open archive {root}: {exc}") from exc
        with archive:
            for rel_path in sorted(archive.namelist()):
                if rel_path.endswith("/") or not rel_path.endswith(".py"):
                    continue
                if _is_excluded_member(rel_path, self._exclude_rules):
                    continue
                try:
                    text = archive.read(rel_path).decode("utf-8")
                except UnicodeDecodeError as exc:
                    logger.warning("Skipping undecodable module %s!%s: %s", root, rel_path, exc)
                    continue
                yield SourceFile(
                    root=str(root), path=rel_path, module=module_name(rel_path), text=text
                )


__all__ = ["IgnoreRule", "SourceFile", "SourceScanner", "build_ignore_rule", "module_name"]
