"""Type-node graph to schema-node tree synthesis."""

from __future__ import annotations

from typing import Any, Callable, List, Tuple
from urllib.parse import quote

from ..errors import UnsupportedTypeError
from ..logging import get_logger
from ..models import MISSING
from ..typemodel.cache import TypeModelCache
from ..typemodel.nodes import (
    ArrayNode,
    ClassModel,
    EnumNode,
    MapNode,
    ObjectNode,
    OptionalNode,
    PrimitiveNode,
    PropertyModel,
    TypeNode,
    UnionNode,
)
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

logger = get_logger("schema")

# Characters RFC 3986 allows in a fragment besides unreserved ones.
_FRAGMENT_SAFE = "!$&'()*+,;=:@/?"


def definition_pointer(key: str) -> str:
    """URI fragment pointing at ``$defs/<key>`` (RFC 6901 escaping plus percent-encoding)."""
    token = key.replace("~", "~0").replace("/", "~1")
    return "#/$defs/" + quote(token, safe=_FRAGMENT_SAFE)


class SchemaSynthesizer:
    """Renders a resolved class model, and every class it reaches, into a document."""

    def __init__(self, cache: TypeModelCache, docstrings: bool = True) -> None:
        self._cache = cache
        self.docstrings = docstrings

    def synthesize(self, root_key: str) -> SchemaDocument:
        root = self._model(root_key)
        queue: List[str] = []
        seen = {root_key}

        def ref(key: str) -> RefType:
            if key == root_key:
                return RefType("#")
            if key not in seen:
                seen.add(key)
                queue.append(key)
            return RefType(definition_pointer(key))

        root_node = self._class_schema(root, ref)
        definitions: List[Tuple[str, SchemaNode]] = []
        while queue:
            key = queue.pop(0)
            definitions.append((key, self._class_schema(self._model(key), ref)))

        logger.debug("Synthesized %s with %d definition(s)", root_key, len(definitions))
        return SchemaDocument(key=root_key, root=root_node, definitions=tuple(definitions))

    def _model(self, key: str) -> ClassModel:
        model = self._cache.get(key)
        if model is None:
            raise UnsupportedTypeError(f"no extracted model for {key}", class_name=key)
        return model

    # ------------------------------------------------------------------
    # Classes

    def _class_schema(self, model: ClassModel, ref: Callable[[str], RefType]) -> SchemaNode:
        descriptor = model.descriptor
        options = descriptor.options
        keywords: List[Tuple[str, Any]] = [("title", options.title or descriptor.name)]
        description = options.description
        if description is None and self.docstrings:
            description = descriptor.docstring
        if description:
            keywords.append(("description", description))
        keywords.extend(options.schema)

        if model.enum is not None:
            return EnumType(values=model.enum.variants).with_keywords(keywords)
        if model.is_polymorphic:
            return OneOf(alternatives=tuple(ref(key) for key in model.variants)).with_keywords(
                keywords
            )

        properties: List[Tuple[str, SchemaNode]] = []
        required: List[str] = []
        tag_names = {name for name, _ in model.tags}
        for name, value in model.tags:
            properties.append((name, EnumType(values=(value,))))
            required.append(name)

        for prop in model.properties:
            if prop.name in tag_names:
                continue
            properties.append((prop.name, self._property_schema(model, prop, ref)))
            annotations = prop.node.annotations
            if annotations.get("required") and not annotations.get("has_default"):
                required.append(prop.name)

        return ObjectType(
            properties=tuple(properties), required=tuple(required), additional=False
        ).with_keywords(keywords)

    def _property_schema(
        self, model: ClassModel, prop: PropertyModel, ref: Callable[[str], RefType]
    ) -> SchemaNode:
        schema = self._node(prop.node, ref, model, prop.path)
        annotations = prop.node.annotations
        keywords: List[Tuple[str, Any]] = []
        if annotations.get("title"):
            keywords.append(("title", annotations["title"]))
        if annotations.get("description"):
            keywords.append(("description", annotations["description"]))
        default = annotations.get("default", MISSING)
        if default is not MISSING:
            keywords.append(("default", default))
        if annotations.get("read_only"):
            keywords.append(("readOnly", True))
        if annotations.get("write_only"):
            keywords.append(("writeOnly", True))
        keywords.extend(annotations.get("hints", {}).items())
        keywords.extend(annotations.get("schema", {}).items())
        return schema.with_keywords(keywords)

    # ------------------------------------------------------------------
    # Type nodes

    def _node(
        self,
        node: TypeNode,
        ref: Callable[[str], RefType],
        model: ClassModel,
        path: str,
    ) -> SchemaNode:
        if isinstance(node, PrimitiveNode):
            return _primitive(node)
        if isinstance(node, ArrayNode):
            return ArrayType(items=self._node(node.element, ref, model, path), unique=node.unique)
        if isinstance(node, MapNode):
            return ObjectType(additional=self._node(node.value, ref, model, path))
        if isinstance(node, ObjectNode):
            return ref(node.ref)
        if isinstance(node, EnumNode):
            return EnumType(values=tuple(node.variants))
        if isinstance(node, UnionNode):
            alternatives = [self._node(item, ref, model, path) for item in node.alternatives]
            return OneOf(alternatives=_distinct(alternatives))
        if isinstance(node, OptionalNode):
            inner = self._node(node.inner, ref, model, path)
            if isinstance(inner, OneOf) and not inner.keywords:
                alternatives = list(inner.alternatives)
            else:
                alternatives = [inner]
            return OneOf(alternatives=_distinct(alternatives + [NullType()]))
        raise UnsupportedTypeError(
            f"no schema mapping for {type(node).__name__}",
            class_name=model.qualified_name,
            property_path=path,
        )


def _primitive(node: PrimitiveNode) -> SchemaNode:
    if node.kind == "string":
        return StringType(format=node.format)
    if node.kind == "integer":
        return NumberType(integer=True)
    if node.kind == "number":
        return NumberType()
    if node.kind == "boolean":
        return BooleanType()
    if node.kind == "null":
        return NullType()
    return AnyType()


def _distinct(nodes: List[SchemaNode]) -> Tuple[SchemaNode, ...]:
    """Drop alternatives structurally equal to an earlier one, keeping order."""
    kept: List[SchemaNode] = []
    for node in nodes:
        if not any(node == existing for existing in kept):
            kept.append(node)
    return tuple(kept)


__all__ = ["SchemaSynthesizer", "definition_pointer"]
