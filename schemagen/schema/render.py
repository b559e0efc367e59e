"""Canonical JSON rendering of schema documents."""

from __future__ import annotations

import json
from typing import Any, Dict

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

KEY_ORDER = (
    "$schema",
    "$id",
    "$ref",
    "title",
    "description",
    "type",
    "format",
    "enum",
    "oneOf",
    "properties",
    "required",
    "additionalProperties",
    "items",
    "uniqueItems",
    "readOnly",
    "writeOnly",
    "default",
)
_KEY_RANK = {key: position for position, key in enumerate(KEY_ORDER)}


def _ordered(data: Dict[str, Any]) -> Dict[str, Any]:
    """Documented keys first, remaining keywords alphabetically, ``$defs`` last."""

    def rank(key: str) -> tuple:
        if key == "$defs":
            return (2, 0, "")
        if key in _KEY_RANK:
            return (0, _KEY_RANK[key], "")
        return (1, 0, key)

    return {key: data[key] for key in sorted(data, key=rank)}


def render_node(node: SchemaNode) -> Dict[str, Any]:
    """Return the JSON-ready mapping for ``node``; keywords override structural keys."""
    data: Dict[str, Any] = {}
    if isinstance(node, StringType):
        data["type"] = "string"
        if node.format:
            data["format"] = node.format
    elif isinstance(node, NumberType):
        data["type"] = "integer" if node.integer else "number"
    elif isinstance(node, BooleanType):
        data["type"] = "boolean"
    elif isinstance(node, NullType):
        data["type"] = "null"
    elif isinstance(node, AnyType):
        pass
    elif isinstance(node, ArrayType):
        data["type"] = "array"
        if node.items is not None:
            data["items"] = render_node(node.items)
        if node.unique:
            data["uniqueItems"] = True
    elif isinstance(node, ObjectType):
        data["type"] = "object"
        if node.properties or node.additional is False:
            data["properties"] = {name: render_node(child) for name, child in node.properties}
        if node.required:
            data["required"] = list(node.required)
        if isinstance(node.additional, SchemaNode):
            data["additionalProperties"] = render_node(node.additional)
        elif node.additional is not None:
            data["additionalProperties"] = node.additional
    elif isinstance(node, RefType):
        data["$ref"] = node.pointer
    elif isinstance(node, OneOf):
        data["oneOf"] = [render_node(child) for child in node.alternatives]
    elif isinstance(node, EnumType):
        data["enum"] = list(node.values)
    else:
        raise TypeError(f"Cannot render {type(node).__name__}")

    for key, value in node.keywords:
        data[key] = value
    return _ordered(data)


def render_document(
    document: SchemaDocument, dialect: str, schema_id: str | None = None
) -> Dict[str, Any]:
    data: Dict[str, Any] = {"$schema": dialect}
    if schema_id:
        data["$id"] = schema_id
    data.update(render_node(document.root))
    if document.definitions:
        data["$defs"] = {key: render_node(node) for key, node in document.definitions}
    return _ordered(data)


def to_json(data: Dict[str, Any], indent: int = 2) -> str:
    """Serialize with stable formatting: fixed indent, non-ASCII kept, trailing newline.

    Raises ValueError for NaN or infinite numbers and TypeError for values JSON
    cannot represent.
    """
    return json.dumps(data, indent=indent, ensure_ascii=False, allow_nan=False) + "\n"


__all__ = ["KEY_ORDER", "render_document", "render_node", "to_json"]
