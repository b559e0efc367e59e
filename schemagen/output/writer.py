"""Deterministic, atomic schema file writes."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional, Sequence

from ..errors import ConfigurationError
from ..logging import get_logger
from ..models import ClassDescriptor
from .locations import DirectoryTreeLocation, LocationStrategy

logger = get_logger("output")


@dataclass
class PlannedWrite:
    """Target of one class, or the collision that prevents writing it."""

    descriptor: ClassDescriptor
    relative_path: PurePosixPath
    target: Path
    error: Optional[ConfigurationError] = None


class SchemaWriter:
    """Writes rendered schema text below ``output_dir``."""

    def __init__(
        self,
        output_dir: Path,
        strategy: Optional[LocationStrategy] = None,
    ) -> None:
        self.output_dir = Path(output_dir)
        self.strategy = strategy or DirectoryTreeLocation()

    def plan(self, descriptors: Sequence[ClassDescriptor]) -> List[PlannedWrite]:
        """Assign output paths, flagging every class whose path collides with another's.

        Paths are compared case-insensitively so output stays portable to
        case-folding file systems.
        """
        planned = [
            PlannedWrite(
                descriptor=descriptor,
                relative_path=self.strategy.relative_path(descriptor),
                target=self.output_dir.joinpath(*self.strategy.relative_path(descriptor).parts),
            )
            for descriptor in descriptors
        ]

        groups: Dict[str, List[PlannedWrite]] = {}
        for item in planned:
            groups.setdefault(str(item.relative_path).casefold(), []).append(item)

        for members in groups.values():
            if len(members) < 2:
                continue
            for item in members:
                others = ", ".join(
                    f"{other.descriptor.qualified_name} ({other.descriptor.source.root})"
                    for other in members
                    if other is not item
                )
                item.error = ConfigurationError(
                    f"output path {item.relative_path} collides with {others}",
                    class_name=item.descriptor.qualified_name,
                )
        return planned

    def write(self, target: Path, text: str) -> bool:
        """Write ``text`` atomically; return False when the file already matches."""
        try:
            if target.is_file() and target.read_text(encoding="utf-8") == text:
                logger.debug("Unchanged %s", target)
                return False
            target.parent.mkdir(parents=True, exist_ok=True)
            handle, temp_name = tempfile.mkstemp(
                dir=target.parent, prefix=f".{target.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(handle, "w", encoding="utf-8", newline="\n") as stream:
                    stream.write(text)
                os.replace(temp_name, target)
            except OSError:
                Path(temp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise ConfigurationError(f"Failed to write {target}: {exc}") from exc
        logger.debug("Wrote %s", target)
        return True


__all__ = ["PlannedWrite", "SchemaWriter"]
