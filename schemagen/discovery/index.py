"""Arena of every class found under the source roots, keyed by qualified name."""

from __future__ import annotations

import ast
import builtins
from dataclasses import dataclass, replace
from fnmatch import fnmatchcase
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..logging import get_logger
from ..models import ClassDescriptor, DirectiveSource, PropertyDescriptor
from .parser import ParsedModule, dotted_parts

logger = get_logger("discovery.index")

_MAX_REEXPORT_DEPTH = 10
_BUILTIN_NAMES = frozenset(dir(builtins))
DEFAULT_DISCRIMINATOR = "type"


def in_packages(module: str, patterns: Sequence[str]) -> bool:
    """Return True when ``module`` matches one of ``patterns`` (or no patterns are set).

    ``pkg`` admits ``pkg`` and every ``pkg.*`` sub-package; glob patterns such as
    ``pkg.*.models`` are matched with :func:`fnmatch.fnmatchcase`.
    """
    if not patterns:
        return True
    for pattern in patterns:
        if module == pattern or module.startswith(f"{pattern}."):
            return True
        if fnmatchcase(module, pattern):
            return True
    return False


@dataclass(frozen=True)
class Symbol:
    """Result of resolving a name in some scope.

    ``kind`` is one of ``class``, ``typevar``, ``alias`` or ``external``. For
    aliases ``module`` is the module the alias expression must be resolved in.
    """

    kind: str
    target: str
    module: Optional[ParsedModule] = None
    node: Optional[ast.expr] = None


class ClassIndex:
    """Holds parsed modules and classes and answers name-resolution queries."""

    def __init__(self) -> None:
        self._modules: Dict[str, ParsedModule] = {}
        self._classes: Dict[str, ClassDescriptor] = {}
        self._class_modules: Dict[str, ParsedModule] = {}
        self._entries: List[ClassDescriptor] = []
        self._subclasses: Dict[str, List[str]] = {}

    # ------------------------------------------------------------------
    # Population

    def add(self, parsed: ParsedModule) -> None:
        """Register a parsed module; the first root to define a name wins."""
        if parsed.module not in self._modules:
            self._modules[parsed.module] = parsed
        for descriptor in parsed.classes:
            self._entries.append(descriptor)
            if descriptor.qualified_name in self._classes:
                logger.warning(
                    "%s is defined under more than one root; using %s",
                    descriptor.qualified_name,
                    self._classes[descriptor.qualified_name].source.root,
                )
                continue
            self._classes[descriptor.qualified_name] = descriptor
            self._class_modules[descriptor.qualified_name] = parsed

    def finalize(self) -> None:
        """Merge inherited properties and record subclass links."""
        merged: Dict[int, ClassDescriptor] = {}
        for descriptor in self._entries:
            merged[id(descriptor)] = self._merge(descriptor, set())

        self._entries = [merged[id(descriptor)] for descriptor in self._entries]
        self._classes = {
            name: merged[id(descriptor)] for name, descriptor in self._classes.items()
        }

        self._subclasses = {}
        for descriptor in self._classes.values():
            for base in self.base_classes(descriptor):
                children = self._subclasses.setdefault(base.qualified_name, [])
                if descriptor.qualified_name not in children:
                    children.append(descriptor.qualified_name)

    def _merge(self, descriptor: ClassDescriptor, visiting: Set[str]) -> ClassDescriptor:
        if descriptor.qualified_name in visiting or descriptor.is_enum:
            return descriptor
        visiting = visiting | {descriptor.qualified_name}

        properties: Dict[str, PropertyDescriptor] = {}
        for base in self.base_classes(descriptor):
            base = self._merge(base, visiting)
            for prop in base.properties:
                if prop.name not in properties:
                    properties[prop.name] = replace(prop, owner=descriptor.qualified_name)

        for prop in descriptor.properties:
            inherited = properties.get(prop.name)
            if inherited is not None:
                carried = tuple(
                    replace(directive, source=DirectiveSource.INHERITED)
                    for directive in inherited.directives
                )
                prop = replace(prop, directives=carried + prop.directives)
            properties[prop.name] = prop

        return replace(descriptor, properties=tuple(properties.values()))

    # ------------------------------------------------------------------
    # Lookups

    def get(self, qualified_name: str) -> Optional[ClassDescriptor]:
        return self._classes.get(qualified_name)

    def __contains__(self, qualified_name: object) -> bool:
        return qualified_name in self._classes

    def descriptors(self) -> List[ClassDescriptor]:
        """Every class in registration order, including duplicates from later roots."""
        return list(self._entries)

    def module_of(self, qualified_name: str) -> Optional[ParsedModule]:
        return self._class_modules.get(qualified_name)

    def base_classes(self, descriptor: ClassDescriptor) -> List[ClassDescriptor]:
        """Bases of ``descriptor`` that are present in the index, in declaration order."""
        bases: List[ClassDescriptor] = []
        for expr in descriptor.bases:
            target = expr.value if isinstance(expr, ast.Subscript) else expr
            symbol = self.resolve_expr(target, descriptor.module, descriptor.qualified_name)
            if symbol is None or symbol.kind != "class":
                continue
            base = self._classes.get(symbol.target)
            if base is not None and base.qualified_name != descriptor.qualified_name:
                bases.append(base)
        return bases

    def subclasses(self, qualified_name: str) -> List[str]:
        return list(self._subclasses.get(qualified_name, ()))

    # ------------------------------------------------------------------
    # Polymorphism

    def variants_of(
        self, descriptor: ClassDescriptor, allowed_packages: Sequence[str] = ()
    ) -> List[ClassDescriptor]:
        """Concrete variants of a polymorphic class.

        Explicit ``subtypes`` keep their declared order; abstract classes use
        their transitive concrete subclasses ordered by qualified name.
        """
        if descriptor.options.subtypes:
            variants: List[ClassDescriptor] = []
            for expr in descriptor.options.subtypes:
                symbol = self.resolve_expr(expr, descriptor.module, descriptor.qualified_name)
                if symbol is None or symbol.kind != "class":
                    logger.warning(
                        "Ignoring unresolvable subtype %s on %s",
                        ast.unparse(expr),
                        descriptor.qualified_name,
                    )
                    continue
                variant = self._classes[symbol.target]
                if variant.qualified_name == descriptor.qualified_name:
                    continue
                if variant.qualified_name in {item.qualified_name for item in variants}:
                    continue
                if in_packages(variant.module, allowed_packages):
                    variants.append(variant)
            return variants

        if not descriptor.is_abstract:
            return []

        found: Dict[str, ClassDescriptor] = {}
        pending = list(self.subclasses(descriptor.qualified_name))
        seen: Set[str] = set()
        while pending:
            name = pending.pop()
            if name in seen:
                continue
            seen.add(name)
            pending.extend(self.subclasses(name))
            candidate = self._classes[name]
            if candidate.is_abstract or candidate.is_enum:
                continue
            if in_packages(candidate.module, allowed_packages):
                found[name] = candidate
        return [found[name] for name in sorted(found)]

    def variant_tags(
        self, descriptor: ClassDescriptor, allowed_packages: Sequence[str] = ()
    ) -> List[Tuple[str, str]]:
        """Discriminator ``(property, value)`` pairs a variant must carry."""
        tags: List[Tuple[str, str]] = []
        type_name = descriptor.options.type_name or descriptor.name
        pending = list(self.base_classes(descriptor))
        seen: Set[str] = set()
        while pending:
            ancestor = pending.pop(0)
            if ancestor.qualified_name in seen:
                continue
            seen.add(ancestor.qualified_name)
            pending.extend(self.base_classes(ancestor))
            options = ancestor.options
            if not (options.discriminator or options.subtypes):
                continue
            variants = self.variants_of(ancestor, allowed_packages)
            if descriptor.qualified_name not in {item.qualified_name for item in variants}:
                continue
            tag = (options.discriminator or DEFAULT_DISCRIMINATOR, type_name)
            if all(existing[0] != tag[0] for existing in tags):
                tags.append(tag)
        return tags

    # ------------------------------------------------------------------
    # Name resolution

    def resolve_expr(
        self, expr: ast.expr, module: str, class_name: Optional[str] = None
    ) -> Optional[Symbol]:
        """Resolve a ``Name``/``Attribute`` expression; None for other shapes."""
        parts = dotted_parts(expr)
        if parts is None:
            return None
        return self.resolve_name(parts, module, class_name)

    def resolve_name(
        self, parts: Tuple[str, ...], module: str, class_name: Optional[str] = None
    ) -> Optional[Symbol]:
        """Resolve dotted ``parts`` as seen from ``class_name`` inside ``module``.

        Lookup order: enclosing class scopes, the class's own type parameters,
        module type variables, module classes, module aliases, imports, builtins.
        Returns None when the name is unknown.
        """
        head, rest = parts[0], parts[1:]
        scope = self._modules.get(module)

        if class_name is not None:
            for enclosing in self._enclosing_scopes(class_name, module):
                candidate = ".".join((enclosing, *parts))
                if candidate in self._classes:
                    return Symbol("class", candidate)
            owner = self._classes.get(class_name)
            if owner is not None and not rest and head in owner.type_params:
                return Symbol("typevar", head)

        if scope is not None:
            if not rest and head in scope.type_vars:
                return Symbol("typevar", head)
            candidate = ".".join((module, *parts)) if module else ".".join(parts)
            if candidate in self._classes:
                return Symbol("class", candidate)
            if not rest and head in scope.aliases:
                return Symbol("alias", head, module=scope, node=scope.aliases[head])
            if head in scope.imports:
                target = ".".join((scope.imports[head], *rest))
                return self.resolve_qualified(target)

        if head in _BUILTIN_NAMES:
            return Symbol("external", ".".join(parts))
        return None

    def resolve_qualified(self, dotted: str, depth: int = 0) -> Symbol:
        """Resolve an absolute dotted name, following re-exports between indexed modules."""
        if dotted in self._classes:
            return Symbol("class", dotted)
        if depth >= _MAX_REEXPORT_DEPTH:
            return Symbol("external", dotted)

        parts = dotted.split(".")
        for split in range(len(parts) - 1, 0, -1):
            module_name = ".".join(parts[:split])
            scope = self._modules.get(module_name)
            if scope is None:
                continue
            head, rest = parts[split], parts[split + 1:]
            if not rest and head in scope.aliases:
                return Symbol("alias", head, module=scope, node=scope.aliases[head])
            if not rest and head in scope.type_vars:
                return Symbol("typevar", head)
            if head in scope.imports:
                target = ".".join((scope.imports[head], *rest))
                return self.resolve_qualified(target, depth + 1)
            break
        return Symbol("external", dotted)

    def _enclosing_scopes(self, class_name: str, module: str) -> Iterable[str]:
        prefix = f"{module}." if module else ""
        path = class_name[len(prefix):].split(".")
        for size in range(len(path), 0, -1):
            yield prefix + ".".join(path[:size])


__all__ = ["ClassIndex", "DEFAULT_DISCRIMINATOR", "Symbol", "in_packages"]
