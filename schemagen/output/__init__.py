"""Schema file placement and writing."""

from .locations import (
    DirectoryTreeLocation,
    FlatDirectoryLocation,
    LocationStrategy,
    location_strategy,
)
from .writer import PlannedWrite, SchemaWriter

__all__ = [
    "DirectoryTreeLocation",
    "FlatDirectoryLocation",
    "LocationStrategy",
    "PlannedWrite",
    "SchemaWriter",
    "location_strategy",
]
