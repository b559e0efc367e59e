"""Helper utilities for constructing temporary model source roots in tests."""

from __future__ import annotations

import json
import textwrap
import zipfile
from pathlib import Path
from typing import Any, Dict, Mapping

from schemagen.config import GeneratorConfig
from schemagen.discovery import DiscoveryResult, DiscoveryScanner
from schemagen.models import RunReport
from schemagen.orchestrator import Orchestrator


class SourceTreeBuilder:
    """Writes model modules into throwaway roots and runs generation over them."""

    def __init__(self, tmp_path: Path) -> None:
        self.base = tmp_path
        self.root = tmp_path / "src"
        self.root.mkdir()
        self.output = tmp_path / "out"

    def write(self, files: Mapping[str, str], root: Path | None = None) -> Path:
        """Write `path -> contents` entries below ``root`` (the default root if omitted)."""
        target_root = root or self.root
        for relative, content in files.items():
            path = target_root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")
        return target_root

    def extra_root(self, name: str) -> Path:
        root = self.base / name
        root.mkdir(exist_ok=True)
        return root

    def archive(self, name: str, files: Mapping[str, str]) -> Path:
        """Create a zip archive root containing ``files``."""
        path = self.base / name
        with zipfile.ZipFile(path, "w") as archive:
            for relative, content in files.items():
                archive.writestr(relative, textwrap.dedent(content).lstrip("\n"))
        return path

    def config(self, **overrides: Any) -> GeneratorConfig:
        config = GeneratorConfig(root=self.base)
        for key, value in overrides.items():
            setattr(config, key, value)
        return config

    def discover(self, **overrides: Any) -> DiscoveryResult:
        config = self.config(**overrides)
        scanner = DiscoveryScanner(
            markers=config.markers,
            allowed_packages=config.allowed_packages,
            allowed_subtype_packages=config.allowed_subtype_packages,
            exclude_paths=config.exclude_paths,
        )
        return scanner.scan([self.root])

    def generate(self, config: GeneratorConfig | None = None, roots=None) -> RunReport:
        orchestrator = Orchestrator(config or self.config())
        return orchestrator.run(roots or [self.root], self.output)

    def schema(self, relative: str) -> Dict[str, Any]:
        """Load a generated schema by its path relative to the output directory."""
        return json.loads((self.output / relative).read_text(encoding="utf-8"))


__all__ = ["SourceTreeBuilder"]
