"""Configuration loading for schemagen (.schemagen.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigurationError

CONFIG_FILENAME = ".schemagen.yml"

DEFAULT_MARKERS = ("generates_schema",)
DEFAULT_DIALECT = "https://json-schema.org/draft/2020-12/schema"

LAYOUTS = ("tree", "flat")
REQUIRED_POLICIES = ("default-satisfies", "strict")


@dataclass
class OutputConfig:
    """Where and how schema files are written.

    ``indent`` defaults to the canonical 2 spaces; other widths stay valid JSON
    but are not the canonical form.
    """

    layout: str = "tree"
    indent: int = 2


@dataclass
class SchemaConfig:
    """Rendering options for generated schema documents."""

    dialect: str = DEFAULT_DIALECT
    docstrings: bool = True
    required_default_policy: str = "default-satisfies"


@dataclass
class GeneratorConfig:
    """Represents the settings defined in .schemagen.yml."""

    root: Path
    markers: List[str] = field(default_factory=lambda: list(DEFAULT_MARKERS))
    allowed_packages: List[str] = field(default_factory=list)
    allowed_subtype_packages: List[str] = field(default_factory=list)
    exclude_paths: List[str] = field(default_factory=list)
    workers: int = 1
    output: OutputConfig = field(default_factory=OutputConfig)
    schema: SchemaConfig = field(default_factory=SchemaConfig)


def load_config(config_path: Path) -> GeneratorConfig:
    """Load configuration from disk, returning defaults when the file is absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return GeneratorConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigurationError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = GeneratorConfig(root=root)

    markers = _as_str_list(data.get("markers"))
    if markers:
        config.markers = markers
    config.allowed_packages = _as_str_list(data.get("allowed_packages"))
    config.allowed_subtype_packages = _as_str_list(data.get("allowed_subtype_packages"))
    config.exclude_paths = _as_str_list(data.get("exclude_paths"))

    workers = _as_int(data.get("workers"))
    if workers is not None:
        if workers < 1:
            raise ConfigurationError("workers must be a positive integer")
        config.workers = workers

    output_data = _as_dict(data.get("output"))
    if output_data:
        layout = _as_str(output_data.get("layout"))
        if layout is not None:
            config.output.layout = _choice("output.layout", layout, LAYOUTS)
        indent = _as_int(output_data.get("indent"))
        if indent is not None:
            if indent < 1:
                raise ConfigurationError("output.indent must be a positive integer")
            config.output.indent = indent

    schema_data = _as_dict(data.get("schema"))
    if schema_data:
        dialect = _as_str(schema_data.get("dialect"))
        if dialect:
            config.schema.dialect = dialect
        docstrings = _as_bool(schema_data.get("docstrings"))
        if docstrings is not None:
            config.schema.docstrings = docstrings
        policy = _as_str(schema_data.get("required_default_policy"))
        if policy is not None:
            config.schema.required_default_policy = _choice(
                "schema.required_default_policy", policy, REQUIRED_POLICIES
            )

    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Failed to read {path}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _choice(key: str, value: str, allowed: Sequence[str]) -> str:
    if value not in allowed:
        options = ", ".join(allowed)
        raise ConfigurationError(f"{key} must be one of: {options} (got {value!r})")
    return value


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "GeneratorConfig",
    "OutputConfig",
    "SchemaConfig",
    "load_config",
]
