"""Intermediate type model: type nodes and the per-class model arena entries."""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..errors import ResolutionError
from ..models import ClassDescriptor, PropertyDescriptor

PRIMITIVE_KINDS = ("string", "integer", "number", "boolean", "null", "any")


@dataclass
class TypeNode:
    """Base class for type nodes.

    ``annotations`` is filled in by the resolver and never takes part in
    structural equality.
    """

    annotations: Dict[str, Any] = field(
        default_factory=dict, init=False, compare=False, repr=False
    )

    def clone(self) -> "TypeNode":
        return copy.deepcopy(self)


@dataclass
class PrimitiveNode(TypeNode):
    kind: str
    format: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind not in PRIMITIVE_KINDS:
            raise ValueError(f"Unknown primitive kind: {self.kind}")


@dataclass
class ArrayNode(TypeNode):
    element: TypeNode
    unique: bool = False


@dataclass
class MapNode(TypeNode):
    value: TypeNode


@dataclass
class ObjectNode(TypeNode):
    """Reference to a class model by its stable key."""

    ref: str


@dataclass
class OptionalNode(TypeNode):
    inner: TypeNode


@dataclass
class EnumNode(TypeNode):
    variants: Tuple[Any, ...]
    members: Tuple[str, ...] = ()


@dataclass
class UnionNode(TypeNode):
    alternatives: Tuple[TypeNode, ...]


def describe(node: TypeNode) -> str:
    """Return a compact, stable rendering of ``node`` used in class keys."""
    if isinstance(node, PrimitiveNode):
        return f"{node.kind}:{node.format}" if node.format else node.kind
    if isinstance(node, ArrayNode):
        prefix = "set" if node.unique else "list"
        return f"{prefix}[{describe(node.element)}]"
    if isinstance(node, MapNode):
        return f"map[{describe(node.value)}]"
    if isinstance(node, ObjectNode):
        return node.ref
    if isinstance(node, OptionalNode):
        return f"optional[{describe(node.inner)}]"
    if isinstance(node, EnumNode):
        return "enum[" + ",".join(repr(value) for value in node.variants) + "]"
    if isinstance(node, UnionNode):
        return "union[" + ",".join(describe(item) for item in node.alternatives) + "]"
    return type(node).__name__


@dataclass(eq=False)
class ClassRef:
    """How to build the model for ``key``: the class plus its type-argument bindings."""

    key: str
    descriptor: ClassDescriptor
    env: Dict[str, TypeNode] = field(default_factory=dict)


@dataclass(eq=False)
class PropertyModel:
    descriptor: PropertyDescriptor
    node: TypeNode

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def path(self) -> str:
        return self.descriptor.path


@dataclass(eq=False)
class ClassModel:
    """Shape of one class (or one parameterization of a generic class)."""

    key: str
    descriptor: ClassDescriptor
    properties: List[PropertyModel] = field(default_factory=list)
    variants: List[str] = field(default_factory=list)
    tags: List[Tuple[str, str]] = field(default_factory=list)
    enum: Optional[EnumNode] = None
    references: List[ClassRef] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    resolved: bool = False
    resolution_error: Optional[ResolutionError] = None

    @property
    def qualified_name(self) -> str:
        return self.descriptor.qualified_name

    @property
    def is_polymorphic(self) -> bool:
        return bool(self.variants)


__all__ = [
    "ArrayNode",
    "ClassModel",
    "ClassRef",
    "EnumNode",
    "MapNode",
    "ObjectNode",
    "OptionalNode",
    "PRIMITIVE_KINDS",
    "PrimitiveNode",
    "PropertyModel",
    "TypeNode",
    "UnionNode",
    "describe",
]
