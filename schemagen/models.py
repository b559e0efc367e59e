"""Core data models shared across schemagen components."""

from __future__ import annotations

import ast
import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple


class _Missing:
    """Sentinel for directive attributes that were not declared."""

    _instance: Optional["_Missing"] = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


class Unrenderable:
    """Marks a usable default whose value cannot be evaluated statically."""

    def __init__(self, source: str) -> None:
        self.source = source

    def __repr__(self) -> str:
        return f"Unrenderable({self.source!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Unrenderable) and other.source == self.source

    def __hash__(self) -> int:
        return hash(self.source)


@dataclass(frozen=True)
class MemberRef:
    """A dotted attribute default such as ``Color.RED``, resolved against enum nodes."""

    parts: Tuple[str, ...]

    @property
    def member(self) -> str:
        return self.parts[-1]

    def __str__(self) -> str:
        return ".".join(self.parts)


class DirectiveSource(enum.IntEnum):
    """Where a directive was declared; higher values take precedence."""

    CLASS = 0
    INHERITED = 1
    SETTER = 2
    GETTER = 3
    ANNOTATION = 4
    FIELD = 5


@dataclass(frozen=True)
class Directive:
    """Normalized per-property instruction consumed by the resolver."""

    source: DirectiveSource
    required: Optional[bool] = None
    default: Any = MISSING
    default_factory: bool = False
    description: Optional[str] = None
    title: Optional[str] = None
    hints: Tuple[Tuple[str, Any], ...] = ()
    schema: Tuple[Tuple[str, Any], ...] = ()
    ignored: Optional[bool] = None
    unknown: Tuple[str, ...] = ()

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING or self.default_factory


@dataclass(frozen=True)
class SourceLocation:
    """Root, root-relative path and line of a declaration."""

    root: str
    path: str
    lineno: int = 0

    def __str__(self) -> str:
        return f"{self.path}:{self.lineno}" if self.lineno else self.path


@dataclass(frozen=True)
class PropertyDescriptor:
    """A declared property of one class."""

    name: str
    owner: str
    annotation: Optional[ast.expr]
    readable: bool = True
    writable: bool = True
    directives: Tuple[Directive, ...] = ()
    lineno: int = 0
    declared_in: str = ""
    docstring: Optional[str] = None

    @property
    def path(self) -> str:
        return f"{self.owner}.{self.name}"

    @property
    def declaring_class(self) -> str:
        """Class whose scope the annotation is written in (differs from owner when inherited)."""
        return self.declared_in or self.owner

    @property
    def is_accessor(self) -> bool:
        return not (self.readable and self.writable)


@dataclass(frozen=True)
class ClassOptions:
    """Class-level directives declared on the generation marker."""

    required: Optional[bool] = None
    ignore: Tuple[str, ...] = ()
    title: Optional[str] = None
    description: Optional[str] = None
    subtypes: Tuple[ast.expr, ...] = ()
    discriminator: Optional[str] = None
    type_name: Optional[str] = None
    schema: Tuple[Tuple[str, Any], ...] = ()


@dataclass(frozen=True)
class ClassDescriptor:
    """Static description of one class, immutable once produced by the scanner."""

    qualified_name: str
    module: str
    name: str
    source: SourceLocation
    bases: Tuple[ast.expr, ...] = ()
    type_params: Tuple[str, ...] = ()
    properties: Tuple[PropertyDescriptor, ...] = ()
    marked: bool = False
    options: ClassOptions = field(default_factory=ClassOptions)
    is_abstract: bool = False
    is_enum: bool = False
    enum_members: Tuple[Tuple[str, Any], ...] = ()
    docstring: Optional[str] = None

    @property
    def class_path(self) -> str:
        """Class qualname inside its module (``Outer.Inner`` for nested classes)."""
        prefix = f"{self.module}." if self.module else ""
        return self.qualified_name[len(prefix):]

    def get_property(self, name: str) -> Optional[PropertyDescriptor]:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None


class Stage(str, enum.Enum):
    """Per-class pipeline stages."""

    DISCOVER = "discover"
    EXTRACT = "extract"
    RESOLVE = "resolve"
    SYNTHESIZE = "synthesize"
    WRITE = "write"


@dataclass
class ClassOutcome:
    """Final state of one class in a generation run."""

    qualified_name: str
    source: Optional[SourceLocation] = None
    stage: Stage = Stage.DISCOVER
    failed: bool = False
    cause: Optional[str] = None
    error_type: Optional[str] = None
    path: Optional[Path] = None
    changed: bool = False

    @property
    def state(self) -> str:
        if self.failed:
            return f"failed({self.stage.value})"
        return "written" if self.stage is Stage.WRITE else self.stage.value

    def diagnostic(self) -> str:
        return f"FAILED {self.qualified_name} [{self.stage.value}]: {self.cause}"


@dataclass
class RunReport:
    """Summary of a generation run."""

    output_dir: Path
    outcomes: List[ClassOutcome] = field(default_factory=list)

    @property
    def failures(self) -> List[ClassOutcome]:
        return [outcome for outcome in self.outcomes if outcome.failed]

    @property
    def written(self) -> List[ClassOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.failed]

    @property
    def succeeded(self) -> bool:
        return not self.failures

    def as_dict(self) -> Dict[str, Any]:
        return {
            "output_dir": str(self.output_dir),
            "succeeded": self.succeeded,
            "classes": [
                {
                    "name": outcome.qualified_name,
                    "state": outcome.state,
                    "stage": outcome.stage.value,
                    "path": str(outcome.path) if outcome.path else None,
                    "cause": outcome.cause,
                }
                for outcome in self.outcomes
            ],
        }


__all__ = [
    "ClassDescriptor",
    "ClassOptions",
    "ClassOutcome",
    "Directive",
    "DirectiveSource",
    "MISSING",
    "MemberRef",
    "PropertyDescriptor",
    "RunReport",
    "SourceLocation",
    "Stage",
    "Unrenderable",
]
