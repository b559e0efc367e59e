"""Static discovery of marked model classes."""

from .index import ClassIndex, Symbol, in_packages
from .parser import ModuleParser, ParsedModule
from .scanner import DiscoveryResult, DiscoveryScanner

__all__ = [
    "ClassIndex",
    "DiscoveryResult",
    "DiscoveryScanner",
    "ModuleParser",
    "ParsedModule",
    "Symbol",
    "in_packages",
]
