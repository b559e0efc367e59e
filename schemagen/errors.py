"""Error taxonomy for schema generation runs."""

from __future__ import annotations

from typing import Optional


class SchemaGenError(RuntimeError):
    """Base class for failures that identify the offending class and property."""

    def __init__(
        self,
        message: str,
        *,
        class_name: Optional[str] = None,
        property_path: Optional[str] = None,
    ) -> None:
        self.class_name = class_name
        self.property_path = property_path
        self.detail = message
        super().__init__(self._format(message))

    def _format(self, message: str) -> str:
        if self.property_path:
            return f"{self.property_path}: {message}"
        if self.class_name:
            return f"{self.class_name}: {message}"
        return message


class ConfigurationError(SchemaGenError):
    """Bad input roots, unreadable configuration or output path collisions."""


class ExtractionError(SchemaGenError):
    """A declared type cannot be turned into a type node."""


class ResolutionError(SchemaGenError):
    """Property directives conflict or do not match the declared type."""


class UnsupportedTypeError(SchemaGenError):
    """The synthesizer has no mapping for a type node kind."""


__all__ = [
    "ConfigurationError",
    "ExtractionError",
    "ResolutionError",
    "SchemaGenError",
    "UnsupportedTypeError",
]
