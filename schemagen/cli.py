"""CLI entrypoints for schemagen commands."""

from __future__ import annotations

import argparse
import dataclasses
import sys
from pathlib import Path

import yaml

from .config import CONFIG_FILENAME, LAYOUTS, GeneratorConfig, load_config
from .errors import ConfigurationError
from .logging import configure_logging
from .orchestrator import Orchestrator

EXIT_FAILURES = 1
EXIT_CONFIGURATION = 2


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_scan_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "roots",
        nargs="+",
        help="Source directories or zip/wheel archives containing model modules.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Path to {CONFIG_FILENAME} (defaults to the current directory).",
    )
    parser.add_argument(
        "--allowed-package",
        action="append",
        dest="allowed_packages",
        default=None,
        help="Only generate schemas for classes in this package (repeatable, globs allowed).",
    )
    parser.add_argument(
        "--allowed-subtype-package",
        action="append",
        dest="allowed_subtype_packages",
        default=None,
        help="Only consider polymorphic variants from this package (repeatable).",
    )
    parser.add_argument(
        "--marker",
        action="append",
        dest="markers",
        default=None,
        help="Decorator name marking classes for generation (repeatable).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schemagen",
        description="Generate JSON Schema documents from annotated Python model classes.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Write one JSON Schema file per marked class.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    _add_scan_options(generate_parser)
    generate_parser.add_argument(
        "-o",
        "--output",
        required=True,
        type=Path,
        help="Directory receiving the generated schema files.",
    )
    generate_parser.add_argument(
        "--layout",
        choices=LAYOUTS,
        default=None,
        help="Output file layout (tree: pkg/mod/Class.json, flat: pkg.mod.Class.json).",
    )
    generate_parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of classes processed in parallel.",
    )
    generate_parser.add_argument(
        "--strict-required",
        action="store_true",
        help="Reject properties declared required that also carry a default.",
    )
    generate_parser.add_argument(
        "--echo-only",
        action="store_true",
        help="Print the effective configuration and exit without generating.",
    )

    discover_parser = subparsers.add_parser(
        "discover",
        help="List the classes that would be generated.",
    )
    _add_verbose_option(discover_parser, suppress_default=True)
    _add_scan_options(discover_parser)

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service exposing generation endpoints.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def _effective_config(args: argparse.Namespace) -> GeneratorConfig:
    config = load_config(args.config if args.config is not None else Path.cwd())
    if args.markers:
        config.markers = list(args.markers)
    if args.allowed_packages:
        config.allowed_packages = list(args.allowed_packages)
    if args.allowed_subtype_packages:
        config.allowed_subtype_packages = list(args.allowed_subtype_packages)
    if getattr(args, "layout", None):
        config.output.layout = args.layout
    workers = getattr(args, "workers", None)
    if workers is not None:
        if workers < 1:
            raise ConfigurationError("--workers must be a positive integer")
        config.workers = workers
    if getattr(args, "strict_required", False):
        config.schema.required_default_policy = "strict"
    return config


def _echo(config: GeneratorConfig, args: argparse.Namespace) -> None:
    payload = dataclasses.asdict(config)
    payload["root"] = str(config.root)
    payload["roots"] = list(args.roots)
    payload["output_dir"] = str(args.output)
    print(yaml.safe_dump(payload, sort_keys=False), end="")


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for schemagen commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    if args.command == "serve":
        from .service.app import run_service

        run_service(host=args.host, port=args.port)
        return

    try:
        config = _effective_config(args)
    except ConfigurationError as exc:
        parser.exit(EXIT_CONFIGURATION, f"schemagen: {exc}\n")

    orchestrator = Orchestrator(config)

    if args.command == "discover":
        try:
            result = orchestrator.discover(args.roots)
        except ConfigurationError as exc:
            parser.exit(EXIT_CONFIGURATION, f"schemagen: {exc}\n")
        for descriptor in result.descriptors:
            print(f"{descriptor.qualified_name}\t{descriptor.source}")
        for failure in result.failures:
            print(failure.diagnostic(), file=sys.stderr)
        if result.failures:
            parser.exit(EXIT_FAILURES)
    elif args.command == "generate":
        if args.echo_only:
            _echo(config, args)
            return
        try:
            report = orchestrator.run(args.roots, args.output)
        except ConfigurationError as exc:
            parser.exit(EXIT_CONFIGURATION, f"schemagen: {exc}\n")
        for failure in report.failures:
            print(failure.diagnostic(), file=sys.stderr)
        summary = Orchestrator.summarize(report)
        print(
            f"{summary['written']} schema(s) written to {_relativize(report.output_dir)} "
            f"({summary['changed']} changed, {summary['failed']} failed)"
        )
        if not report.succeeded:
            parser.exit(EXIT_FAILURES)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(EXIT_FAILURES, "Unknown command\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
