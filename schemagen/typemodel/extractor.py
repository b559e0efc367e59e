"""Conversion of class descriptors into type-node graphs."""

from __future__ import annotations

import ast
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ..discovery.index import ClassIndex, Symbol
from ..discovery.parser import evaluate_literal
from ..errors import ExtractionError, SchemaGenError
from ..logging import get_logger
from ..models import ClassDescriptor, PropertyDescriptor
from .cache import TypeModelCache
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
    describe,
)

logger = get_logger("typemodel")

_MAX_ALIAS_DEPTH = 20
# Bracket depth of a generic class key; growing recursive generics hit it.
_MAX_GENERIC_NESTING = 16

# Terminal name of an external type -> (primitive kind, format).
PRIMITIVES: Dict[str, Tuple[str, Optional[str]]] = {
    "str": ("string", None),
    "int": ("integer", None),
    "float": ("number", None),
    "Decimal": ("number", None),
    "bool": ("boolean", None),
    "bytes": ("string", None),
    "NoneType": ("null", None),
    "Any": ("any", None),
    "object": ("any", None),
    "datetime": ("string", "date-time"),
    "date": ("string", "date"),
    "time": ("string", "time"),
    "timedelta": ("string", "duration"),
    "UUID": ("string", "uuid"),
    "Path": ("string", "path"),
    "PurePath": ("string", "path"),
    "PosixPath": ("string", "path"),
    "IPv4Address": ("string", "ipv4"),
    "IPv6Address": ("string", "ipv6"),
    "EmailStr": ("string", "email"),
    "AnyUrl": ("string", "uri"),
    "HttpUrl": ("string", "uri"),
}

ARRAYS = {
    "list",
    "List",
    "Sequence",
    "MutableSequence",
    "Iterable",
    "Iterator",
    "Collection",
    "deque",
    "Deque",
}
SETS = {"set", "Set", "frozenset", "FrozenSet", "AbstractSet", "MutableSet"}
MAPS = {
    "dict",
    "Dict",
    "Mapping",
    "MutableMapping",
    "OrderedDict",
    "defaultdict",
    "DefaultDict",
}
TUPLES = {"tuple", "Tuple"}
WRAPPERS = {"Required", "NotRequired", "Final", "ReadOnly"}


@dataclass(frozen=True)
class _Scope:
    module: str
    class_name: Optional[str]
    env: Dict[str, TypeNode]


def ignored_names(descriptor: ClassDescriptor) -> Set[str]:
    """Names dropped by the class `ignore` option or a property `ignore` directive."""
    names = set(descriptor.options.ignore)
    for prop in descriptor.properties:
        flags = [d for d in prop.directives if d.ignored is not None]
        if flags and max(flags, key=lambda d: d.source).ignored:
            names.add(prop.name)
    return names


class TypeModelExtractor:
    """Builds :class:`ClassModel` closures, memoized in a shared cache."""

    def __init__(
        self,
        index: ClassIndex,
        cache: Optional[TypeModelCache] = None,
        allowed_subtype_packages: Sequence[str] = (),
    ) -> None:
        self.index = index
        self.cache = cache if cache is not None else TypeModelCache()
        self.allowed_subtype_packages = list(allowed_subtype_packages)

    def extract(self, descriptor: ClassDescriptor) -> ClassModel:
        """Return the model for ``descriptor`` after extracting every class it reaches."""
        root = self._build(ClassRef(descriptor.qualified_name, descriptor))
        pending: List[ClassRef] = list(root.references)
        seen = {root.key}
        while pending:
            ref = pending.pop(0)
            if ref.key in seen:
                continue
            seen.add(ref.key)
            model = self._build(ref)
            pending.extend(model.references)
        return root

    def closure(self, model: ClassModel) -> List[ClassModel]:
        """Models reachable from ``model`` (itself first), in breadth-first order."""
        ordered: List[ClassModel] = []
        pending = [model.key]
        seen = set()
        while pending:
            key = pending.pop(0)
            if key in seen:
                continue
            seen.add(key)
            current = self.cache.get(key)
            if current is None:
                continue
            ordered.append(current)
            pending.extend(ref.key for ref in current.references)
        return ordered

    def model(self, key: str) -> Optional[ClassModel]:
        return self.cache.get(key)

    # ------------------------------------------------------------------
    # Class models

    def _build(self, ref: ClassRef) -> ClassModel:
        cached = self.cache.get(ref.key)
        if cached is not None:
            return cached
        try:
            model = self._extract_model(ref)
        except SchemaGenError as exc:
            self.cache.fail(ref.key, exc)
            raise
        except RecursionError:
            error = ExtractionError(
                "type graph nests too deeply to extract", class_name=ref.descriptor.qualified_name
            )
            self.cache.fail(ref.key, error)
            raise error from None
        logger.debug("Extracted %s (%d properties)", ref.key, len(model.properties))
        return self.cache.publish(model)

    def _extract_model(self, ref: ClassRef) -> ClassModel:
        descriptor = ref.descriptor
        references: Dict[str, ClassRef] = {}
        model = ClassModel(key=ref.key, descriptor=descriptor)
        model.tags = self.index.variant_tags(descriptor, self.allowed_subtype_packages)

        if descriptor.is_enum:
            model.enum = self._enum_node(descriptor)
            return model

        variants = self.index.variants_of(descriptor, self.allowed_subtype_packages)
        if variants:
            for variant in variants:
                variant_ref = references.setdefault(
                    variant.qualified_name, ClassRef(variant.qualified_name, variant)
                )
                model.variants.append(variant_ref.key)
            model.references = list(references.values())
            return model
        if descriptor.is_abstract:
            raise ExtractionError(
                "abstract class has no resolvable variants",
                class_name=descriptor.qualified_name,
            )

        envs = self._inherited_envs(descriptor, ref.env, references)
        ignored = ignored_names(descriptor)
        for prop in descriptor.properties:
            if prop.name in ignored:
                continue
            node = self._property_node(descriptor, prop, envs, references)
            model.properties.append(PropertyModel(descriptor=prop, node=node))

        model.references = list(references.values())
        return model

    def _property_node(
        self,
        descriptor: ClassDescriptor,
        prop: PropertyDescriptor,
        envs: Dict[str, Dict[str, TypeNode]],
        references: Dict[str, ClassRef],
    ) -> TypeNode:
        if prop.annotation is None:
            raise ExtractionError(
                "accessor has no return type annotation",
                class_name=descriptor.qualified_name,
                property_path=prop.path,
            )
        declaring = self.index.get(prop.declaring_class) or descriptor
        scope = _Scope(
            module=declaring.module,
            class_name=declaring.qualified_name,
            env=envs.get(declaring.qualified_name, {}),
        )
        return self._node(prop.annotation, scope, prop.path, descriptor, references)

    def _inherited_envs(
        self,
        descriptor: ClassDescriptor,
        env: Dict[str, TypeNode],
        references: Dict[str, ClassRef],
    ) -> Dict[str, Dict[str, TypeNode]]:
        """Type-argument bindings for each ancestor, as seen from ``descriptor``."""
        envs: Dict[str, Dict[str, TypeNode]] = {descriptor.qualified_name: env}
        pending: List[Tuple[ClassDescriptor, Dict[str, TypeNode]]] = [(descriptor, env)]
        while pending:
            current, current_env = pending.pop(0)
            scope = _Scope(current.module, current.qualified_name, current_env)
            for expr in current.bases:
                target = expr.value if isinstance(expr, ast.Subscript) else expr
                symbol = self.index.resolve_expr(target, current.module, current.qualified_name)
                if symbol is None or symbol.kind != "class" or symbol.target in envs:
                    continue
                base = self.index.get(symbol.target)
                if base is None:
                    continue
                base_env: Dict[str, TypeNode] = {}
                if isinstance(expr, ast.Subscript) and base.type_params:
                    args = _subscript_args(expr)
                    nodes = [
                        self._node(arg, scope, descriptor.qualified_name, descriptor, references)
                        for arg in args
                    ]
                    base_env = dict(zip(base.type_params, nodes))
                envs[base.qualified_name] = base_env
                pending.append((base, base_env))
        return envs

    @staticmethod
    def _enum_node(descriptor: ClassDescriptor) -> EnumNode:
        names = tuple(name for name, _ in descriptor.enum_members)
        values = tuple(value for _, value in descriptor.enum_members)
        if values and all(isinstance(value, str) for value in values):
            return EnumNode(variants=values, members=names)
        return EnumNode(variants=names, members=names)

    # ------------------------------------------------------------------
    # Type expressions

    def _node(
        self,
        expr: ast.expr,
        scope: _Scope,
        path: str,
        owner: ClassDescriptor,
        references: Dict[str, ClassRef],
        depth: int = 0,
    ) -> TypeNode:
        def fail(message: str) -> ExtractionError:
            return ExtractionError(message, class_name=owner.qualified_name, property_path=path)

        if depth > _MAX_ALIAS_DEPTH:
            raise fail("type alias nesting is too deep (alias cycle?)")

        def recurse(child: ast.expr, child_scope: _Scope = scope, extra: int = 0) -> TypeNode:
            return self._node(child, child_scope, path, owner, references, depth + extra)

        if isinstance(expr, ast.Constant):
            if expr.value is None:
                return PrimitiveNode("null")
            if isinstance(expr.value, str):
                try:
                    parsed = ast.parse(expr.value.strip(), mode="eval").body
                except SyntaxError:
                    raise fail(f"invalid forward reference {expr.value!r}") from None
                return recurse(parsed)
            raise fail(f"unsupported annotation {ast.unparse(expr)}")

        if isinstance(expr, ast.BinOp) and isinstance(expr.op, ast.BitOr):
            return _union([recurse(expr.left), recurse(expr.right)])

        if isinstance(expr, (ast.Name, ast.Attribute)):
            symbol = self.index.resolve_expr(expr, scope.module, scope.class_name)
            return self._symbol_node(symbol, expr, (), scope, fail, recurse, references)

        if isinstance(expr, ast.Subscript):
            symbol = self.index.resolve_expr(expr.value, scope.module, scope.class_name)
            return self._symbol_node(
                symbol, expr.value, _subscript_args(expr), scope, fail, recurse, references
            )

        raise fail(f"unsupported annotation {ast.unparse(expr)}")

    def _symbol_node(
        self,
        symbol: Optional[Symbol],
        expr: ast.expr,
        args: Sequence[ast.expr],
        scope: _Scope,
        fail,
        recurse,
        references: Dict[str, ClassRef],
    ) -> TypeNode:
        name = ast.unparse(expr)
        if symbol is None:
            raise fail(f"unknown type {name}")

        if symbol.kind == "typevar":
            if args:
                raise fail(f"type parameter {name} cannot be subscripted")
            bound = scope.env.get(symbol.target)
            if bound is None:
                raise fail(f"unbound type parameter {symbol.target}")
            return bound.clone()

        if symbol.kind == "alias":
            if args:
                raise fail(f"parameterized type alias {name} is not supported")
            alias_scope = _Scope(symbol.module.module, None, {})
            return recurse(symbol.node, alias_scope, 1)

        if symbol.kind == "class":
            descriptor = self.index.get(symbol.target)
            return self._class_node(descriptor, args, fail, recurse, references)

        return self._external_node(symbol.target, args, fail, recurse)

    def _class_node(
        self,
        descriptor: ClassDescriptor,
        args: Sequence[ast.expr],
        fail,
        recurse,
        references: Dict[str, ClassRef],
    ) -> TypeNode:
        if descriptor.is_enum:
            if args:
                raise fail(f"enum {descriptor.qualified_name} cannot be subscripted")
            return self._enum_node(descriptor)

        env: Dict[str, TypeNode] = {}
        key = descriptor.qualified_name
        if descriptor.type_params:
            if not args:
                raise fail(
                    f"generic class {descriptor.qualified_name} is used without type arguments"
                )
            if len(args) != len(descriptor.type_params):
                raise fail(
                    f"{descriptor.qualified_name} expects {len(descriptor.type_params)} "
                    f"type argument(s), got {len(args)}"
                )
            nodes = [recurse(arg) for arg in args]
            env = dict(zip(descriptor.type_params, nodes))
            key = f"{key}[{', '.join(describe(node) for node in nodes)}]"
            if _nesting(key) > _MAX_GENERIC_NESTING:
                raise fail(
                    f"non-regular recursive generic {descriptor.qualified_name}: "
                    f"type arguments nest deeper than {_MAX_GENERIC_NESTING} levels"
                )
        elif args:
            raise fail(f"{descriptor.qualified_name} is not generic")

        references.setdefault(key, ClassRef(key, descriptor, env))
        return ObjectNode(ref=key)

    def _external_node(
        self, target: str, args: Sequence[ast.expr], fail, recurse
    ) -> TypeNode:
        name = target.rsplit(".", 1)[-1]

        if name in {"Optional", "Union"}:
            if not args:
                raise fail(f"{name} requires type arguments")
            nodes = [recurse(arg) for arg in args]
            if name == "Optional":
                return _union(nodes + [PrimitiveNode("null")])
            return _union(nodes)

        if name == "Literal":
            values = []
            for arg in args:
                value = evaluate_literal(arg)
                if not (value is None or isinstance(value, (str, int, float, bool))):
                    raise fail(f"unsupported Literal value {ast.unparse(arg)}")
                values.append(value)
            nullable = None in values
            enum = EnumNode(variants=tuple(value for value in values if value is not None))
            return OptionalNode(enum) if nullable else enum

        if name == "Annotated":
            if not args:
                raise fail("Annotated requires a type argument")
            return recurse(args[0])

        if name in WRAPPERS:
            if len(args) != 1:
                raise fail(f"{name} requires exactly one type argument")
            return recurse(args[0])

        if name in ARRAYS or name in SETS:
            if len(args) > 1:
                raise fail(f"{name} takes a single element type")
            element = recurse(args[0]) if args else PrimitiveNode("any")
            return ArrayNode(element=element, unique=name in SETS)

        if name in TUPLES:
            if not args:
                return ArrayNode(element=PrimitiveNode("any"))
            if (
                len(args) == 2
                and isinstance(args[1], ast.Constant)
                and args[1].value is Ellipsis
            ):
                return ArrayNode(element=recurse(args[0]))
            raise fail("fixed-length tuples are not supported; use tuple[T, ...]")

        if name in MAPS:
            if not args:
                return MapNode(value=PrimitiveNode("any"))
            if len(args) != 2:
                raise fail(f"{name} requires key and value types")
            key = recurse(args[0])
            if not _is_string_key(key):
                raise fail(f"map keys must be strings, got {ast.unparse(args[0])}")
            return MapNode(value=recurse(args[1]))

        if name in PRIMITIVES:
            if args:
                raise fail(f"{name} cannot be subscripted")
            kind, fmt = PRIMITIVES[name]
            return PrimitiveNode(kind, fmt)

        raise fail(f"unsupported type {target}")


def _subscript_args(expr: ast.Subscript) -> List[ast.expr]:
    if isinstance(expr.slice, ast.Tuple):
        return list(expr.slice.elts)
    return [expr.slice]


def _nesting(key: str) -> int:
    """Deepest bracket level in a generic class key such as ``m.Page[list[int]]``."""
    depth = deepest = 0
    for char in key:
        if char == "[":
            depth += 1
            deepest = max(deepest, depth)
        elif char == "]":
            depth -= 1
    return deepest


def _is_string_key(node: TypeNode) -> bool:
    if isinstance(node, PrimitiveNode):
        return node.kind == "string"
    if isinstance(node, EnumNode):
        return all(isinstance(value, str) for value in node.variants)
    return False


def _union(nodes: Sequence[TypeNode]) -> TypeNode:
    """Flatten nested unions and lift ``None`` into a single Optional wrapper."""
    alternatives: List[TypeNode] = []
    nullable = False
    pending = list(nodes)
    while pending:
        node = pending.pop(0)
        if isinstance(node, UnionNode):
            pending[:0] = list(node.alternatives)
        elif isinstance(node, OptionalNode):
            nullable = True
            pending.insert(0, node.inner)
        elif isinstance(node, PrimitiveNode) and node.kind == "null":
            nullable = True
        else:
            alternatives.append(node)

    if not alternatives:
        return PrimitiveNode("null")
    result = alternatives[0] if len(alternatives) == 1 else UnionNode(tuple(alternatives))
    return OptionalNode(result) if nullable else result


__all__ = ["TypeModelExtractor", "ignored_names"]
