"""Discovery of marked classes across source roots."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence

from ..config import DEFAULT_MARKERS
from ..errors import ExtractionError
from ..logging import get_logger
from ..models import ClassDescriptor, ClassOutcome, Stage
from ..source_scanner import SourceScanner
from .index import ClassIndex, in_packages
from .parser import ModuleParser

logger = get_logger("discovery")


@dataclass
class DiscoveryResult:
    """Marked classes in output order plus the index used to resolve references."""

    descriptors: List[ClassDescriptor]
    index: ClassIndex
    failures: List[ClassOutcome] = field(default_factory=list)


class DiscoveryScanner:
    """Find classes carrying a generation marker without importing any code."""

    def __init__(
        self,
        markers: Sequence[str] = DEFAULT_MARKERS,
        allowed_packages: Sequence[str] = (),
        allowed_subtype_packages: Sequence[str] = (),
        exclude_paths: Sequence[str] = (),
    ) -> None:
        self.allowed_packages = list(allowed_packages)
        self.allowed_subtype_packages = list(allowed_subtype_packages)
        self._parser = ModuleParser(markers)
        self._sources = SourceScanner(exclude_paths)

    def scan(self, roots: Sequence[str | Path]) -> DiscoveryResult:
        """Return marked classes sorted by qualified name (root order breaks ties).

        Raises :class:`ConfigurationError` for missing or invalid roots before
        any class is examined.
        """
        index = ClassIndex()
        for source in self._sources.scan(roots):
            try:
                parsed = self._parser.parse(source)
            except SyntaxError as exc:
                logger.warning("Skipping %s: %s", source.path, exc)
                continue
            index.add(parsed)
        index.finalize()

        candidates = [
            descriptor
            for descriptor in index.descriptors()
            if descriptor.marked and in_packages(descriptor.module, self.allowed_packages)
        ]
        candidates.sort(key=lambda descriptor: descriptor.qualified_name)

        descriptors: List[ClassDescriptor] = []
        failures: List[ClassOutcome] = []
        for descriptor in candidates:
            if descriptor.is_abstract and not index.variants_of(
                descriptor, self.allowed_subtype_packages
            ):
                error = ExtractionError(
                    "abstract class has no resolvable variants",
                    class_name=descriptor.qualified_name,
                )
                logger.error("%s", error)
                failures.append(
                    ClassOutcome(
                        qualified_name=descriptor.qualified_name,
                        source=descriptor.source,
                        stage=Stage.DISCOVER,
                        failed=True,
                        cause=str(error),
                        error_type=type(error).__name__,
                    )
                )
                continue
            descriptors.append(descriptor)

        logger.info(
            "Discovered %d marked class(es) in %d indexed class(es)",
            len(candidates),
            len(index.descriptors()),
        )
        return DiscoveryResult(descriptors=descriptors, index=index, failures=failures)


__all__ = ["DiscoveryResult", "DiscoveryScanner"]
