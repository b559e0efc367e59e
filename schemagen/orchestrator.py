"""Pipeline orchestration: discover, extract, resolve, synthesize, write."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .config import GeneratorConfig
from .discovery import DiscoveryResult, DiscoveryScanner
from .errors import SchemaGenError, UnsupportedTypeError
from .logging import get_logger
from .models import ClassOutcome, RunReport, Stage
from .output import PlannedWrite, SchemaWriter, location_strategy
from .resolver import AnnotationResolver
from .schema import SchemaSynthesizer, render_document, to_json
from .typemodel import TypeModelCache, TypeModelExtractor


class Orchestrator:
    """Coordinates schema generation runs for a fixed configuration."""

    def __init__(self, config: Optional[GeneratorConfig] = None) -> None:
        self.config = config or GeneratorConfig(root=Path.cwd())
        self.logger = get_logger("orchestrator")
        self.scanner = DiscoveryScanner(
            markers=self.config.markers,
            allowed_packages=self.config.allowed_packages,
            allowed_subtype_packages=self.config.allowed_subtype_packages,
            exclude_paths=self.config.exclude_paths,
        )

    def discover(self, roots: Sequence[str | Path]) -> DiscoveryResult:
        """Run discovery only; ConfigurationError propagates for bad roots."""
        self.logger.info("Scanning %d root(s)", len(roots))
        return self.scanner.scan(roots)

    def run(self, roots: Sequence[str | Path], output_dir: str | Path) -> RunReport:
        """Generate one schema file per discovered class.

        Per-class failures are recorded in the report and never stop other
        classes; configuration problems with the roots abort before any class
        is processed.
        """
        output_path = Path(output_dir).expanduser().resolve()
        discovery = self.discover(roots)

        extractor = TypeModelExtractor(
            discovery.index,
            TypeModelCache(),
            allowed_subtype_packages=self.config.allowed_subtype_packages,
        )
        resolver = AnnotationResolver(
            policy=self.config.schema.required_default_policy,
            docstrings=self.config.schema.docstrings,
        )
        synthesizer = SchemaSynthesizer(extractor.cache, docstrings=self.config.schema.docstrings)
        writer = SchemaWriter(output_path, location_strategy(self.config.output.layout))

        outcomes: List[ClassOutcome] = list(discovery.failures)
        pending: List[PlannedWrite] = []
        for item in writer.plan(discovery.descriptors):
            if item.error is None:
                pending.append(item)
                continue
            self.logger.error("%s", item.error)
            outcomes.append(
                ClassOutcome(
                    qualified_name=item.descriptor.qualified_name,
                    source=item.descriptor.source,
                    stage=Stage.WRITE,
                    failed=True,
                    cause=str(item.error),
                    error_type=type(item.error).__name__,
                    path=item.target,
                )
            )

        def process(item: PlannedWrite) -> ClassOutcome:
            return self._process(item, extractor, resolver, synthesizer, writer)

        workers = max(1, self.config.workers)
        if workers == 1 or len(pending) < 2:
            outcomes.extend(process(item) for item in pending)
        else:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                outcomes.extend(pool.map(process, pending))

        outcomes.sort(key=lambda outcome: outcome.qualified_name)
        report = RunReport(output_dir=output_path, outcomes=outcomes)
        changed = sum(1 for outcome in report.written if outcome.changed)
        self.logger.info(
            "Generated %d schema(s) (%d changed), %d failure(s)",
            len(report.written),
            changed,
            len(report.failures),
        )
        return report

    def _process(
        self,
        item: PlannedWrite,
        extractor: TypeModelExtractor,
        resolver: AnnotationResolver,
        synthesizer: SchemaSynthesizer,
        writer: SchemaWriter,
    ) -> ClassOutcome:
        descriptor = item.descriptor
        outcome = ClassOutcome(
            qualified_name=descriptor.qualified_name,
            source=descriptor.source,
            path=item.target,
        )
        try:
            outcome.stage = Stage.EXTRACT
            model = extractor.extract(descriptor)

            outcome.stage = Stage.RESOLVE
            resolver.resolve_all(extractor.closure(model))

            outcome.stage = Stage.SYNTHESIZE
            document = synthesizer.synthesize(model.key)
            data = render_document(
                document,
                dialect=self.config.schema.dialect,
                schema_id=descriptor.qualified_name,
            )
            try:
                text = to_json(data, self.config.output.indent)
            except (TypeError, ValueError) as exc:
                raise UnsupportedTypeError(
                    f"schema is not valid JSON: {exc}", class_name=descriptor.qualified_name
                ) from exc

            outcome.stage = Stage.WRITE
            outcome.changed = writer.write(item.target, text)
        except SchemaGenError as exc:
            self.logger.error(
                "Failed %s at %s: %s", descriptor.qualified_name, outcome.stage.value, exc
            )
            outcome.failed = True
            outcome.cause = str(exc)
            outcome.error_type = type(exc).__name__
            return outcome

        self.logger.debug(
            "%s %s", "Wrote" if outcome.changed else "Unchanged", item.relative_path
        )
        return outcome

    @staticmethod
    def summarize(report: RunReport) -> Dict[str, int]:
        return {
            "written": len(report.written),
            "changed": sum(1 for outcome in report.written if outcome.changed),
            "failed": len(report.failures),
        }


__all__ = ["Orchestrator"]
