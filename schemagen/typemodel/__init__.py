"""Language-neutral type model built from class descriptors."""

from .cache import TypeModelCache
from .extractor import TypeModelExtractor
from .nodes import (
    ArrayNode,
    ClassModel,
    ClassRef,
    EnumNode,
    MapNode,
    ObjectNode,
    OptionalNode,
    PrimitiveNode,
    PropertyModel,
    TypeNode,
    UnionNode,
)

__all__ = [
    "ArrayNode",
    "ClassModel",
    "ClassRef",
    "EnumNode",
    "MapNode",
    "ObjectNode",
    "OptionalNode",
    "PrimitiveNode",
    "PropertyModel",
    "TypeModelCache",
    "TypeModelExtractor",
    "TypeNode",
    "UnionNode",
]
