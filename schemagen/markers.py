"""Runtime markers for model modules.

The scanner recognises these names statically and never imports model code, so
the implementations here only need to keep decorated classes and fields usable
at runtime.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Callable, Optional, TypeVar, overload

_T = TypeVar("_T")


@overload
def generates_schema(cls: type[_T]) -> type[_T]: ...


@overload
def generates_schema(cls: None = None, **options: Any) -> Callable[[type[_T]], type[_T]]: ...


def generates_schema(cls: Optional[type] = None, **options: Any) -> Any:
    """Mark a class for schema generation.

    Usable bare (``@generates_schema``) or with class-level options such as
    ``required``, ``ignore``, ``title``, ``description``, ``subtypes``,
    ``discriminator``, ``type_name`` and ``schema``.
    """

    def _mark(target: type) -> type:
        setattr(target, "__schemagen_options__", dict(options))
        return target

    if cls is not None:
        return _mark(cls)
    return _mark


def schema_field(default: Any = dataclasses.MISSING, **directives: Any) -> Any:
    """Attach schema directives to a class attribute.

    Returns the default itself, a ``dataclasses.field`` carrying
    ``default_factory``, or ``dataclasses.MISSING`` when there is no default,
    so a dataclass still treats the field as required.
    """
    factory = directives.get("default_factory")
    if default is dataclasses.MISSING and callable(factory):
        return dataclasses.field(default_factory=factory)
    return default


def schema_property(**directives: Any) -> Callable[[Callable[..., _T]], Callable[..., _T]]:
    """Attach schema directives to a property getter or setter."""

    def _decorate(func: Callable[..., _T]) -> Callable[..., _T]:
        setattr(func, "__schemagen_directives__", dict(directives))
        return func

    return _decorate


__all__ = ["generates_schema", "schema_field", "schema_property"]
