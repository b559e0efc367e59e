"""Output-side schema nodes mirroring JSON Schema keywords.

Nodes are frozen; use :meth:`SchemaNode.with_keywords` (or
:func:`dataclasses.replace`) to derive annotated copies.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Optional, Tuple, Union


@dataclass(frozen=True)
class SchemaNode:
    keywords: Tuple[Tuple[str, Any], ...] = field(default=(), kw_only=True)

    def with_keywords(self, pairs: Iterable[Tuple[str, Any]]) -> "SchemaNode":
        extra = tuple(pairs)
        if not extra:
            return self
        return replace(self, keywords=self.keywords + extra)


@dataclass(frozen=True)
class StringType(SchemaNode):
    format: Optional[str] = None


@dataclass(frozen=True)
class NumberType(SchemaNode):
    integer: bool = False


@dataclass(frozen=True)
class BooleanType(SchemaNode):
    pass


@dataclass(frozen=True)
class NullType(SchemaNode):
    pass


@dataclass(frozen=True)
class AnyType(SchemaNode):
    pass


@dataclass(frozen=True)
class ArrayType(SchemaNode):
    items: Optional[SchemaNode] = None
    unique: bool = False


@dataclass(frozen=True)
class ObjectType(SchemaNode):
    """A class object (``additional`` is False) or a string-keyed map (``additional`` is a node)."""

    properties: Tuple[Tuple[str, SchemaNode], ...] = ()
    required: Tuple[str, ...] = ()
    additional: Union[bool, SchemaNode, None] = None


@dataclass(frozen=True)
class RefType(SchemaNode):
    pointer: str = "#"


@dataclass(frozen=True)
class OneOf(SchemaNode):
    alternatives: Tuple[SchemaNode, ...] = ()


@dataclass(frozen=True)
class EnumType(SchemaNode):
    values: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class SchemaDocument:
    """Root schema of one class plus the definitions it references."""

    key: str
    root: SchemaNode
    definitions: Tuple[Tuple[str, SchemaNode], ...] = ()


__all__ = [
    "AnyType",
    "ArrayType",
    "BooleanType",
    "EnumType",
    "NullType",
    "NumberType",
    "ObjectType",
    "OneOf",
    "RefType",
    "SchemaDocument",
    "SchemaNode",
    "StringType",
]
