"""Static parsing of model modules into class descriptors.

Modules are read with :mod:`ast` only; nothing is imported or executed. The
parser recognises markers, directives and typing wrappers by their terminal
name (``generates_schema``, ``schema.generates_schema`` and
``markers.generates_schema`` all match the ``generates_schema`` marker).
"""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..logging import get_logger
from ..models import (
    MISSING,
    ClassDescriptor,
    ClassOptions,
    Directive,
    DirectiveSource,
    MemberRef,
    PropertyDescriptor,
    SourceLocation,
    Unrenderable,
)
from ..source_scanner import SourceFile

logger = get_logger("discovery.parser")

FIELD_FUNCTIONS = {"schema_field", "field", "Field"}
ACCESSOR_DECORATOR = "schema_property"

# Python keyword -> JSON Schema keyword. Pydantic style aliases included.
HINT_KEYWORDS: Dict[str, str] = {
    "format": "format",
    "pattern": "pattern",
    "minimum": "minimum",
    "maximum": "maximum",
    "exclusive_minimum": "exclusiveMinimum",
    "exclusive_maximum": "exclusiveMaximum",
    "ge": "minimum",
    "le": "maximum",
    "gt": "exclusiveMinimum",
    "lt": "exclusiveMaximum",
    "multiple_of": "multipleOf",
    "min_length": "minLength",
    "max_length": "maxLength",
    "min_items": "minItems",
    "max_items": "maxItems",
    "unique_items": "uniqueItems",
    "examples": "examples",
    "deprecated": "deprecated",
}

# Keywords accepted by dataclasses.field / pydantic.Field with no schema meaning.
_IGNORED_KEYWORDS = {
    "init",
    "repr",
    "hash",
    "compare",
    "kw_only",
    "metadata",
    "alias",
    "validation_alias",
    "serialization_alias",
    "frozen",
    "strict",
    "validate_default",
}

_EMPTY_FACTORIES: Dict[str, Any] = {"list": [], "dict": {}, "set": [], "tuple": [], "frozenset": []}

_ENUM_BASES = {"Enum", "StrEnum", "IntEnum", "Flag", "IntFlag"}
_ABSTRACT_BASES = {"ABC", "Protocol"}
_SKIPPED_WRAPPERS = {"ClassVar", "InitVar"}
_TYPEVAR_FACTORIES = {"TypeVar", "ParamSpec", "TypeVarTuple"}


def terminal_name(node: ast.AST) -> Optional[str]:
    """Return the last identifier of a name, attribute or call expression."""
    if isinstance(node, ast.Call):
        return terminal_name(node.func)
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    if isinstance(node, ast.Subscript):
        return terminal_name(node.value)
    return None


def dotted_parts(node: ast.AST) -> Optional[Tuple[str, ...]]:
    """Return ``("a", "b", "c")`` for ``a.b.c``; None for anything else."""
    if isinstance(node, ast.Name):
        return (node.id,)
    if isinstance(node, ast.Attribute):
        head = dotted_parts(node.value)
        return head + (node.attr,) if head is not None else None
    return None


def evaluate_literal(node: ast.expr) -> Any:
    """Evaluate a default expression statically.

    Literals evaluate to plain JSON-compatible values, ``Color.RED`` style
    attribute chains become :class:`MemberRef`, anything else is kept as an
    :class:`Unrenderable` default.
    """
    try:
        value = ast.literal_eval(node)
    except (ValueError, TypeError, SyntaxError, MemoryError, RecursionError):
        parts = dotted_parts(node)
        if parts is not None and len(parts) > 1:
            return MemberRef(parts)
        return Unrenderable(ast.unparse(node))
    return _jsonable(value)


def _jsonable(value: Any) -> Any:
    if isinstance(value, tuple):
        return [_jsonable(item) for item in value]
    if isinstance(value, (set, frozenset)):
        items = [_jsonable(item) for item in value]
        try:
            return sorted(items)
        except TypeError:
            return sorted(items, key=repr)
    if isinstance(value, list):
        return [_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, bytes):
        return Unrenderable(repr(value))
    if isinstance(value, complex):
        return Unrenderable(repr(value))
    return value


def _literal_or_none(node: ast.expr) -> Any:
    value = evaluate_literal(node)
    if isinstance(value, (Unrenderable, MemberRef)):
        return None
    return value


def directive_from_call(
    call: ast.Call, source: DirectiveSource, *, positional_default: bool = True
) -> Directive:
    """Normalize a ``schema_field``/``field``/``Field``/``schema_property`` call."""
    required: Optional[bool] = None
    default: Any = MISSING
    factory = False
    description: Optional[str] = None
    title: Optional[str] = None
    ignored: Optional[bool] = None
    hints: List[Tuple[str, Any]] = []
    schema: Tuple[Tuple[str, Any], ...] = ()
    unknown: List[str] = []

    if positional_default and call.args:
        first = call.args[0]
        if isinstance(first, ast.Constant) and first.value is Ellipsis:
            required = True
        else:
            default = evaluate_literal(first)

    for keyword in call.keywords:
        name = keyword.arg
        value_node = keyword.value
        if name is None:
            unknown.append("**kwargs")
            continue
        if name == "default":
            if isinstance(value_node, ast.Constant) and value_node.value is Ellipsis:
                required = True
            else:
                default = evaluate_literal(value_node)
        elif name == "default_factory":
            factory_name = terminal_name(value_node)
            if isinstance(value_node, ast.Name) and factory_name in _EMPTY_FACTORIES:
                default = _copy_empty(_EMPTY_FACTORIES[factory_name])
            else:
                factory = True
        elif name == "required":
            value = _literal_or_none(value_node)
            if isinstance(value, bool):
                required = value
            else:
                unknown.append("required (expected True or False)")
        elif name in {"description", "title"}:
            value = _literal_or_none(value_node)
            if not isinstance(value, str):
                unknown.append(f"{name} (expected a string literal)")
            elif name == "description":
                description = value
            else:
                title = value
        elif name in {"ignore", "exclude"}:
            value = _literal_or_none(value_node)
            if isinstance(value, bool):
                ignored = value
            else:
                unknown.append(f"{name} (expected True or False)")
        elif name in {"schema", "json_schema_extra"}:
            value = _literal_or_none(value_node)
            if isinstance(value, dict):
                schema = tuple(value.items())
            else:
                unknown.append(f"{name} (expected a dict literal)")
        elif name in HINT_KEYWORDS:
            value = evaluate_literal(value_node)
            if isinstance(value, (Unrenderable, MemberRef)):
                unknown.append(f"{name} (expected a literal)")
            else:
                hints.append((HINT_KEYWORDS[name], value))
        elif name in _IGNORED_KEYWORDS:
            continue
        else:
            unknown.append(name)

    return Directive(
        source=source,
        required=required,
        default=default,
        default_factory=factory,
        description=description,
        title=title,
        hints=tuple(hints),
        schema=schema,
        ignored=ignored,
        unknown=tuple(unknown),
    )


def _copy_empty(value: Any) -> Any:
    return type(value)()


def annotation_directives(annotation: ast.expr) -> List[Directive]:
    """Collect directives carried by ``Annotated``/``Required``/``NotRequired`` wrappers."""
    directives: List[Directive] = []
    node = annotation
    while isinstance(node, ast.Subscript):
        wrapper = terminal_name(node.value)
        if wrapper == "Annotated":
            elements = node.slice.elts if isinstance(node.slice, ast.Tuple) else [node.slice]
            for meta in elements[1:]:
                if isinstance(meta, ast.Call) and terminal_name(meta) in FIELD_FUNCTIONS:
                    directives.append(
                        directive_from_call(meta, DirectiveSource.ANNOTATION)
                    )
            node = elements[0] if elements else node.slice
        elif wrapper in {"Required", "NotRequired"}:
            directives.append(
                Directive(source=DirectiveSource.ANNOTATION, required=wrapper == "Required")
            )
            node = node.slice
        elif wrapper in {"Final", "ReadOnly"}:
            node = node.slice
        else:
            break
    return directives


@dataclass
class ParsedModule:
    """Module-level scope information needed to resolve names later."""

    source: SourceFile
    module: str
    is_package: bool
    imports: Dict[str, str] = field(default_factory=dict)
    type_vars: Set[str] = field(default_factory=set)
    aliases: Dict[str, ast.expr] = field(default_factory=dict)
    classes: List[ClassDescriptor] = field(default_factory=list)


class ModuleParser:
    """Turns one source file into a :class:`ParsedModule`."""

    def __init__(self, markers: Sequence[str]) -> None:
        self._markers = set(markers)

    def parse(self, source: SourceFile) -> ParsedModule:
        """Parse ``source``; raises :class:`SyntaxError` for invalid modules."""
        tree = ast.parse(source.text, filename=source.path)
        parsed = ParsedModule(
            source=source,
            module=source.module,
            is_package=source.path.endswith("__init__.py"),
        )
        for node in tree.body:
            if isinstance(node, (ast.Import, ast.ImportFrom)):
                self._record_import(parsed, node)
            elif isinstance(node, ast.Assign):
                self._record_assignment(parsed, node)
            elif isinstance(node, ast.AnnAssign):
                self._record_annotated_alias(parsed, node)
            elif isinstance(node, ast.ClassDef):
                self._parse_class(parsed, node, prefix="")
            elif isinstance(node, ast.If):
                # `if TYPE_CHECKING:` imports are visible to annotations.
                for child in node.body:
                    if isinstance(child, (ast.Import, ast.ImportFrom)):
                        self._record_import(parsed, child)
        return parsed

    # ------------------------------------------------------------------
    # Module scope

    def _record_import(self, parsed: ParsedModule, node: ast.Import | ast.ImportFrom) -> None:
        if isinstance(node, ast.Import):
            for alias in node.names:
                if alias.asname:
                    parsed.imports[alias.asname] = alias.name
                else:
                    head = alias.name.split(".")[0]
                    parsed.imports[head] = head
            return

        base = self._import_base(parsed, node)
        for alias in node.names:
            if alias.name == "*":
                continue
            target = f"{base}.{alias.name}" if base else alias.name
            parsed.imports[alias.asname or alias.name] = target

    @staticmethod
    def _import_base(parsed: ParsedModule, node: ast.ImportFrom) -> str:
        if not node.level:
            return node.module or ""
        package_parts = parsed.module.split(".") if parsed.module else []
        if not parsed.is_package and package_parts:
            package_parts = package_parts[:-1]
        if node.level > 1:
            package_parts = package_parts[: len(package_parts) - (node.level - 1)]
        if node.module:
            package_parts.append(node.module)
        return ".".join(part for part in package_parts if part)

    @staticmethod
    def _record_assignment(parsed: ParsedModule, node: ast.Assign) -> None:
        if len(node.targets) != 1 or not isinstance(node.targets[0], ast.Name):
            return
        name = node.targets[0].id
        value = node.value
        if isinstance(value, ast.Call) and terminal_name(value) in _TYPEVAR_FACTORIES:
            parsed.type_vars.add(name)
        elif isinstance(value, (ast.Subscript, ast.Name, ast.Attribute)) or (
            isinstance(value, ast.BinOp) and isinstance(value.op, ast.BitOr)
        ):
            parsed.aliases[name] = value

    @staticmethod
    def _record_annotated_alias(parsed: ParsedModule, node: ast.AnnAssign) -> None:
        if (
            isinstance(node.target, ast.Name)
            and node.value is not None
            and terminal_name(node.annotation) == "TypeAlias"
        ):
            parsed.aliases[node.target.id] = node.value

    # ------------------------------------------------------------------
    # Classes

    def _parse_class(self, parsed: ParsedModule, node: ast.ClassDef, prefix: str) -> None:
        class_path = f"{prefix}.{node.name}" if prefix else node.name
        qualified = f"{parsed.module}.{class_path}" if parsed.module else class_path

        marked, options = self._marker_options(node)
        is_enum = any(terminal_name(base) in _ENUM_BASES for base in node.bases)
        is_abstract = any(
            terminal_name(base) in _ABSTRACT_BASES for base in node.bases
        ) or any(
            keyword.arg == "metaclass" and terminal_name(keyword.value) == "ABCMeta"
            for keyword in node.keywords
        )

        properties: Dict[str, PropertyDescriptor] = {}
        enum_members: List[Tuple[str, Any]] = []

        for statement in node.body:
            if isinstance(statement, ast.AnnAssign):
                prop = self._parse_field(qualified, statement)
                if prop is not None:
                    properties.pop(prop.name, None)
                    properties[prop.name] = prop
            elif isinstance(statement, ast.Assign) and is_enum:
                enum_members.extend(self._enum_members(statement))
            elif isinstance(statement, (ast.FunctionDef, ast.AsyncFunctionDef)):
                decorators = {terminal_name(item) for item in statement.decorator_list}
                if "abstractmethod" in decorators:
                    is_abstract = True
                self._parse_accessor(qualified, statement, properties)
            elif isinstance(statement, ast.ClassDef):
                self._parse_class(parsed, statement, class_path)

        descriptor = ClassDescriptor(
            qualified_name=qualified,
            module=parsed.module,
            name=node.name,
            source=SourceLocation(
                root=parsed.source.root, path=parsed.source.path, lineno=node.lineno
            ),
            bases=tuple(node.bases),
            type_params=self._type_params(parsed, node),
            properties=tuple(properties.values()) if not is_enum else (),
            marked=marked,
            options=options,
            is_abstract=is_abstract and not is_enum,
            is_enum=is_enum,
            enum_members=tuple(enum_members),
            docstring=ast.get_docstring(node),
        )
        parsed.classes.append(descriptor)

    def _marker_options(self, node: ast.ClassDef) -> Tuple[bool, ClassOptions]:
        for decorator in node.decorator_list:
            if terminal_name(decorator) not in self._markers:
                continue
            if not isinstance(decorator, ast.Call):
                return True, ClassOptions()
            return True, self._class_options(node.name, decorator)
        return False, ClassOptions()

    @staticmethod
    def _class_options(class_name: str, call: ast.Call) -> ClassOptions:
        values: Dict[str, Any] = {}
        subtypes: Tuple[ast.expr, ...] = ()
        for keyword in call.keywords:
            if keyword.arg == "subtypes":
                if isinstance(keyword.value, (ast.List, ast.Tuple)):
                    subtypes = tuple(keyword.value.elts)
                continue
            if keyword.arg is None:
                continue
            values[keyword.arg] = _literal_or_none(keyword.value)

        unexpected = set(values) - {
            "required",
            "ignore",
            "title",
            "description",
            "discriminator",
            "type_name",
            "schema",
        }
        if unexpected:
            logger.warning(
                "Ignoring unknown marker option(s) on %s: %s",
                class_name,
                ", ".join(sorted(unexpected)),
            )

        required = values.get("required")
        ignore = values.get("ignore") or ()
        schema = values.get("schema")
        return ClassOptions(
            required=required if isinstance(required, bool) else None,
            ignore=tuple(str(item) for item in ignore) if isinstance(ignore, list) else (),
            title=_str_or_none(values.get("title")),
            description=_str_or_none(values.get("description")),
            subtypes=subtypes,
            discriminator=_str_or_none(values.get("discriminator")),
            type_name=_str_or_none(values.get("type_name")),
            schema=tuple(schema.items()) if isinstance(schema, dict) else (),
        )

    @staticmethod
    def _type_params(parsed: ParsedModule, node: ast.ClassDef) -> Tuple[str, ...]:
        declared = [param.name for param in getattr(node, "type_params", None) or []]
        if declared:
            return tuple(declared)

        generic_params: List[str] = []
        implicit: List[str] = []
        for base in node.bases:
            if not isinstance(base, ast.Subscript):
                continue
            names = [
                item.id
                for item in ast.walk(base.slice)
                if isinstance(item, ast.Name) and item.id in parsed.type_vars
            ]
            if terminal_name(base.value) in {"Generic", "Protocol"}:
                generic_params.extend(names)
            else:
                implicit.extend(names)
        ordered = generic_params or implicit
        return tuple(dict.fromkeys(ordered))

    def _parse_field(self, owner: str, node: ast.AnnAssign) -> Optional[PropertyDescriptor]:
        if not isinstance(node.target, ast.Name):
            return None
        name = node.target.id
        if name.startswith("_"):
            return None
        if self._wrapper_name(node.annotation) in _SKIPPED_WRAPPERS:
            return None

        directives: List[Directive] = annotation_directives(node.annotation)
        value = node.value
        if value is not None:
            if isinstance(value, ast.Call) and terminal_name(value) in FIELD_FUNCTIONS:
                positional = terminal_name(value) != "field"
                directives.append(
                    directive_from_call(value, DirectiveSource.FIELD, positional_default=positional)
                )
            else:
                directives.append(
                    Directive(source=DirectiveSource.FIELD, default=evaluate_literal(value))
                )

        return PropertyDescriptor(
            name=name,
            owner=owner,
            annotation=node.annotation,
            readable=True,
            writable=True,
            directives=tuple(directives),
            lineno=node.lineno,
            declared_in=owner,
        )

    @staticmethod
    def _wrapper_name(annotation: ast.expr) -> Optional[str]:
        if isinstance(annotation, ast.Constant) and isinstance(annotation.value, str):
            try:
                annotation = ast.parse(annotation.value, mode="eval").body
            except SyntaxError:
                return None
        return terminal_name(annotation)

    def _parse_accessor(
        self,
        owner: str,
        node: ast.FunctionDef | ast.AsyncFunctionDef,
        properties: Dict[str, PropertyDescriptor],
    ) -> None:
        if node.name.startswith("_"):
            return
        directive_calls = [
            item
            for item in node.decorator_list
            if isinstance(item, ast.Call) and terminal_name(item) == ACCESSOR_DECORATOR
        ]
        for decorator in node.decorator_list:
            name = terminal_name(decorator)
            if name in {"property", "cached_property"} and isinstance(
                decorator, (ast.Name, ast.Attribute)
            ):
                directives = tuple(
                    directive_from_call(call, DirectiveSource.GETTER, positional_default=False)
                    for call in directive_calls
                )
                properties.pop(node.name, None)
                properties[node.name] = PropertyDescriptor(
                    name=node.name,
                    owner=owner,
                    annotation=node.returns,
                    readable=True,
                    writable=False,
                    directives=directives,
                    lineno=node.lineno,
                    declared_in=owner,
                    docstring=ast.get_docstring(node),
                )
                return
            if (
                name == "setter"
                and isinstance(decorator, ast.Attribute)
                and isinstance(decorator.value, ast.Name)
            ):
                target = properties.get(decorator.value.id)
                if target is None:
                    return
                directives = tuple(
                    directive_from_call(call, DirectiveSource.SETTER, positional_default=False)
                    for call in directive_calls
                )
                properties[target.name] = PropertyDescriptor(
                    name=target.name,
                    owner=target.owner,
                    annotation=target.annotation,
                    readable=target.readable,
                    writable=True,
                    directives=target.directives + directives,
                    lineno=target.lineno,
                    declared_in=target.declared_in,
                    docstring=target.docstring,
                )
                return

    @staticmethod
    def _enum_members(node: ast.Assign) -> Iterable[Tuple[str, Any]]:
        for target in node.targets:
            if not isinstance(target, ast.Name) or target.id.startswith("_"):
                continue
            value = evaluate_literal(node.value)
            if isinstance(value, (Unrenderable, MemberRef)):
                # auto() and computed members fall back to the member name.
                value = target.id
            yield target.id, value


def _str_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


__all__ = [
    "FIELD_FUNCTIONS",
    "HINT_KEYWORDS",
    "ModuleParser",
    "ParsedModule",
    "annotation_directives",
    "directive_from_call",
    "dotted_parts",
    "evaluate_literal",
    "terminal_name",
]
