"""Build-time JSON Schema generation for annotated Python model classes."""

from .config import GeneratorConfig, load_config
from .errors import (
    ConfigurationError,
    ExtractionError,
    ResolutionError,
    SchemaGenError,
    UnsupportedTypeError,
)
from .markers import generates_schema, schema_field, schema_property
from .orchestrator import Orchestrator

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "ExtractionError",
    "GeneratorConfig",
    "Orchestrator",
    "ResolutionError",
    "SchemaGenError",
    "UnsupportedTypeError",
    "generates_schema",
    "load_config",
    "schema_field",
    "schema_property",
]
