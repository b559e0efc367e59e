"""JSON Schema synthesis and rendering."""

from .nodes import (
    AnyType,
    ArrayType,
    BooleanType,
    EnumType,
    NullType,
    NumberType,
    ObjectType,
    OneOf,
    RefType,
    SchemaDocument,
    SchemaNode,
    StringType,
)
from .render import KEY_ORDER, render_document, render_node, to_json
from .synthesizer import SchemaSynthesizer, definition_pointer

__all__ = [
    "AnyType",
    "ArrayType",
    "BooleanType",
    "EnumType",
    "KEY_ORDER",
    "NullType",
    "NumberType",
    "ObjectType",
    "OneOf",
    "RefType",
    "SchemaDocument",
    "SchemaNode",
    "SchemaSynthesizer",
    "StringType",
    "definition_pointer",
    "render_document",
    "render_node",
    "to_json",
]
