"""Strategies mapping a class to its schema file path under the output directory."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Dict, Type

from ..errors import ConfigurationError
from ..models import ClassDescriptor

SCHEMA_SUFFIX = ".json"


class LocationStrategy:
    """Derives a forward-slash relative path from a class's qualified name."""

    name = "base"

    def relative_path(self, descriptor: ClassDescriptor) -> PurePosixPath:
        raise NotImplementedError


class DirectoryTreeLocation(LocationStrategy):
    """``pkg/sub/mod/ClassName.json``; nested classes keep their dotted path."""

    name = "tree"

    def relative_path(self, descriptor: ClassDescriptor) -> PurePosixPath:
        segments = descriptor.module.split(".") if descriptor.module else []
        return PurePosixPath(*segments, f"{descriptor.class_path}{SCHEMA_SUFFIX}")


class FlatDirectoryLocation(LocationStrategy):
    """``pkg.sub.mod.ClassName.json`` directly under the output directory."""

    name = "flat"

    def relative_path(self, descriptor: ClassDescriptor) -> PurePosixPath:
        return PurePosixPath(f"{descriptor.qualified_name}{SCHEMA_SUFFIX}")


LOCATION_STRATEGIES: Dict[str, Type[LocationStrategy]] = {
    DirectoryTreeLocation.name: DirectoryTreeLocation,
    FlatDirectoryLocation.name: FlatDirectoryLocation,
}


def location_strategy(layout: str) -> LocationStrategy:
    try:
        return LOCATION_STRATEGIES[layout]()
    except KeyError:
        options = ", ".join(sorted(LOCATION_STRATEGIES))
        raise ConfigurationError(f"Unknown output layout {layout!r} (expected {options})") from None


__all__ = [
    "DirectoryTreeLocation",
    "FlatDirectoryLocation",
    "LOCATION_STRATEGIES",
    "LocationStrategy",
    "location_strategy",
]
