"""Directive merging: required-ness, defaults and schema hints per property."""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Sequence

from .config import REQUIRED_POLICIES
from .errors import ConfigurationError, ResolutionError
from .logging import get_logger
from .models import MISSING, Directive, DirectiveSource, MemberRef, Unrenderable
from .typemodel.nodes import (
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
    describe,
)

logger = get_logger("resolver")


def check_default(node: TypeNode, value: Any) -> bool:
    """Return True when ``value`` is a valid instance of ``node``.

    Checks are type-strict: ``True`` is not an integer and ``1`` is not a string.
    """
    if isinstance(node, OptionalNode):
        return value is None or check_default(node.inner, value)
    if isinstance(node, PrimitiveNode):
        if node.kind == "any":
            return True
        if node.kind == "null":
            return value is None
        if node.kind == "boolean":
            return isinstance(value, bool)
        if node.kind == "integer":
            return isinstance(value, int) and not isinstance(value, bool)
        if node.kind == "number":
            return isinstance(value, (int, float)) and not isinstance(value, bool)
        return isinstance(value, str)
    if isinstance(node, ArrayNode):
        return isinstance(value, list) and all(check_default(node.element, item) for item in value)
    if isinstance(node, MapNode):
        return isinstance(value, dict) and all(
            isinstance(key, str) and check_default(node.value, item)
            for key, item in value.items()
        )
    if isinstance(node, EnumNode):
        return any(
            type(variant) is type(value) and variant == value for variant in node.variants
        )
    if isinstance(node, UnionNode):
        return any(check_default(alternative, value) for alternative in node.alternatives)
    if isinstance(node, ObjectNode):
        return isinstance(value, dict)
    return False


def is_json_value(value: Any) -> bool:
    """Return True when ``value`` encodes as strict JSON (string keys, finite numbers)."""
    if value is None or isinstance(value, (str, bool, int)):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, list):
        return all(is_json_value(item) for item in value)
    if isinstance(value, dict):
        return all(
            isinstance(key, str) and is_json_value(item) for key, item in value.items()
        )
    return False


def _enum_of(node: TypeNode) -> Optional[EnumNode]:
    if isinstance(node, OptionalNode):
        return _enum_of(node.inner)
    return node if isinstance(node, EnumNode) else None


def _is_nullable(node: TypeNode) -> bool:
    return isinstance(node, OptionalNode) or (
        isinstance(node, PrimitiveNode) and node.kind in {"null", "any"}
    )


class AnnotationResolver:
    """Attaches merged directives to each property's type node.

    Precedence, lowest first: class option, inherited declaration, setter,
    getter, annotation metadata, field declaration.
    """

    def __init__(self, policy: str = "default-satisfies", docstrings: bool = True) -> None:
        if policy not in REQUIRED_POLICIES:
            raise ConfigurationError(f"Unknown required/default policy: {policy}")
        self.policy = policy
        self.docstrings = docstrings

    def resolve(self, model: ClassModel) -> ClassModel:
        """Resolve ``model`` once; later calls return the cached outcome."""
        with model.lock:
            error = model.resolution_error
            if error is not None:
                raise ResolutionError(
                    error.detail, class_name=error.class_name, property_path=error.property_path
                )
            if model.resolved:
                return model
            try:
                for prop in model.properties:
                    self._resolve_property(model, prop)
            except ResolutionError as exc:
                model.resolution_error = exc
                raise
            model.resolved = True
        logger.debug("Resolved directives for %s", model.key)
        return model

    def resolve_all(self, models: Sequence[ClassModel]) -> None:
        for model in models:
            self.resolve(model)

    def _resolve_property(self, model: ClassModel, prop: PropertyModel) -> None:
        def fail(message: str) -> ResolutionError:
            return ResolutionError(
                message, class_name=model.qualified_name, property_path=prop.path
            )

        directives: List[Directive] = []
        class_required = model.descriptor.options.required
        if class_required is not None:
            directives.append(Directive(source=DirectiveSource.CLASS, required=class_required))
        directives.extend(prop.descriptor.directives)
        directives.sort(key=lambda directive: directive.source)

        unknown = [name for directive in directives for name in directive.unknown]
        if unknown:
            raise fail(f"unknown directive keyword(s): {', '.join(unknown)}")

        declared: Dict[DirectiveSource, set] = {}
        for directive in directives:
            if directive.required is not None:
                declared.setdefault(directive.source, set()).add(directive.required)
        for source, values in declared.items():
            if len(values) > 1:
                raise fail(
                    f"conflicting required declarations at {source.name.lower()} level"
                )

        required: Optional[bool] = None
        description: Optional[str] = None
        title: Optional[str] = None
        has_default = False
        default: Any = MISSING
        hints: Dict[str, Any] = {}
        fragment: Dict[str, Any] = {}
        for directive in directives:
            if directive.required is not None:
                required = directive.required
            if directive.has_default:
                has_default = True
                default = directive.default
            if directive.description is not None:
                description = directive.description
            if directive.title is not None:
                title = directive.title
            hints.update(directive.hints)
            fragment.update(directive.schema)

        for keyword, value in list(hints.items()) + list(fragment.items()):
            if not is_json_value(value):
                raise fail(f"schema keyword {keyword} is not valid JSON: {value!r}")

        node = prop.node
        if has_default:
            default = self._check_default(node, default, fail)

        if self.policy == "strict" and required and has_default:
            raise fail("declared required but also has a default")

        if required is None:
            required = not has_default and not _is_nullable(node)

        if description is None and self.docstrings:
            description = prop.descriptor.docstring

        readable = prop.descriptor.readable
        writable = prop.descriptor.writable
        node.annotations.update(
            required=required,
            has_default=has_default,
            default=default,
            description=description,
            title=title,
            hints=hints,
            schema=fragment,
            read_only=readable and not writable,
            write_only=writable and not readable,
        )

    @staticmethod
    def _check_default(node: TypeNode, value: Any, fail) -> Any:
        """Validate a literal default; return the value to render (MISSING when none)."""
        if value is MISSING or isinstance(value, Unrenderable):
            return MISSING
        if isinstance(value, MemberRef):
            enum = _enum_of(node)
            if enum is None:
                return MISSING
            if value.member not in enum.members:
                raise fail(f"default {value} is not a member of {describe(enum)}")
            return enum.variants[enum.members.index(value.member)]
        if not check_default(node, value):
            raise fail(f"default {value!r} does not match type {describe(node)}")
        if not is_json_value(value):
            raise fail(f"default {value!r} is not valid JSON")
        return value


__all__ = ["AnnotationResolver", "check_default", "is_json_value"]
