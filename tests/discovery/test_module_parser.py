"""Tests for schemagen.discovery.parser."""

from __future__ import annotations

import ast
import textwrap

from schemagen.discovery.parser import ModuleParser, evaluate_literal
from schemagen.models import MISSING, DirectiveSource, MemberRef, Unrenderable
from schemagen.source_scanner import SourceFile


def _parse(text: str, module: str = "shop.models", path: str = "shop/models.py"):
    source = SourceFile(
        root="/roots/src", path=path, module=module, text=textwrap.dedent(text).lstrip("\n")
    )
    return ModuleParser(["generates_schema"]).parse(source)


def _classes(parsed):
    return {descriptor.qualified_name: descriptor for descriptor in parsed.classes}


def test_parser_collects_fields_in_declaration_order() -> None:
    parsed = _parse(
        """
        from dataclasses import dataclass
        from typing import ClassVar

        from schemagen import generates_schema


        @generates_schema
        @dataclass
        class Customer:
            \"\"\"A paying customer.\"\"\"

            name: str
            age: int = 0
            registry: ClassVar[dict] = {}
            _secret: str = "x"
        """
    )

    customer = _classes(parsed)["shop.models.Customer"]
    assert customer.marked is True
    assert customer.docstring == "A paying customer."
    assert [prop.name for prop in customer.properties] == ["name", "age"]
    age = customer.get_property("age")
    assert age.path == "shop.models.Customer.age"
    assert age.directives[0].source is DirectiveSource.FIELD
    assert age.directives[0].default == 0
    assert customer.get_property("name").directives == ()


def test_parser_reads_marker_options() -> None:
    parsed = _parse(
        """
        import schemagen


        @schemagen.generates_schema(
            title="Order", required=True, ignore=["internal"], discriminator="kind"
        )
        class Order:
            id: str
            internal: str
        """
    )

    options = _classes(parsed)["shop.models.Order"].options
    assert options.title == "Order"
    assert options.required is True
    assert options.ignore == ("internal",)
    assert options.discriminator == "kind"


def test_parser_normalizes_field_directives() -> None:
    parsed = _parse(
        """
        from dataclasses import field
        from pydantic import Field
        from schemagen import schema_field


        class Item:
            sku: str = schema_field(description="Stock unit", pattern="^[A-Z]+$")
            tags: list[str] = field(default_factory=list)
            price: float = Field(..., ge=0, description="Unit price")
            created: str = field(default_factory=make_timestamp)
            colour: str = schema_field("red", bogus=True)
        """
    )

    item = _classes(parsed)["shop.models.Item"]
    sku = item.get_property("sku").directives[0]
    assert sku.description == "Stock unit"
    assert sku.hints == (("pattern", "^[A-Z]+$"),)
    assert sku.default is MISSING

    tags = item.get_property("tags").directives[0]
    assert tags.default == []
    assert tags.default_factory is False

    price = item.get_property("price").directives[0]
    assert price.required is True
    assert price.hints == (("minimum", 0),)

    created = item.get_property("created").directives[0]
    assert created.default_factory is True
    assert created.has_default is True

    colour = item.get_property("colour").directives[0]
    assert colour.default == "red"
    assert colour.unknown == ("bogus",)


def test_parser_reads_annotated_and_required_wrappers() -> None:
    parsed = _parse(
        """
        from typing import Annotated, NotRequired
        from schemagen import schema_field


        class Profile:
            nickname: Annotated[str, schema_field(title="Nick")]
            bio: NotRequired[str]
        """
    )

    profile = _classes(parsed)["shop.models.Profile"]
    nickname = profile.get_property("nickname").directives
    assert [directive.source for directive in nickname] == [DirectiveSource.ANNOTATION]
    assert nickname[0].title == "Nick"
    bio = profile.get_property("bio").directives
    assert bio[0].required is False


def test_parser_reads_property_accessors() -> None:
    parsed = _parse(
        """
        from schemagen import schema_property


        class Account:
            @property
            def balance(self) -> float:
                \"\"\"Current balance.\"\"\"
                return 0.0

            @property
            @schema_property(description="Display name")
            def label(self) -> str:
                return ""

            @label.setter
            @schema_property(required=False)
            def label(self, value: str) -> None:
                pass

            def helper(self) -> int:
                return 1
        """
    )

    account = _classes(parsed)["shop.models.Account"]
    balance = account.get_property("balance")
    assert (balance.readable, balance.writable) == (True, False)
    assert balance.docstring == "Current balance."
    assert balance.is_accessor is True

    label = account.get_property("label")
    assert (label.readable, label.writable) == (True, True)
    assert [directive.source for directive in label.directives] == [
        DirectiveSource.GETTER,
        DirectiveSource.SETTER,
    ]
    assert label.directives[0].description == "Display name"
    assert account.get_property("helper") is None


def test_parser_records_enums_abstract_classes_and_nesting() -> None:
    parsed = _parse(
        """
        import enum
        from abc import ABC, abstractmethod


        class Colour(str, enum.Enum):
            RED = "red"
            GREEN = "green"


        class Level(enum.IntEnum):
            LOW = 1
            HIGH = 2


        class Shape(ABC):
            name: str


        class Drawable:
            @abstractmethod
            def draw(self) -> None: ...


        class Outer:
            class Inner:
                value: int
        """
    )

    classes = _classes(parsed)
    assert classes["shop.models.Colour"].is_enum is True
    assert classes["shop.models.Colour"].enum_members == (("RED", "red"), ("GREEN", "green"))
    assert classes["shop.models.Level"].enum_members == (("LOW", 1), ("HIGH", 2))
    assert classes["shop.models.Shape"].is_abstract is True
    assert classes["shop.models.Drawable"].is_abstract is True
    inner = classes["shop.models.Outer.Inner"]
    assert inner.class_path == "Outer.Inner"
    assert inner.get_property("value") is not None


def test_parser_tracks_imports_type_vars_and_aliases() -> None:
    parsed = _parse(
        """
        from typing import Generic, TypeVar
        from . import base
        from ..common import Money as Cash
        import datetime as dt

        T = TypeVar("T")
        Tags = list[str]


        class Box(Generic[T]):
            item: T
        """,
        module="shop.orders.models",
        path="shop/orders/models.py",
    )

    assert parsed.imports["base"] == "shop.orders.base"
    assert parsed.imports["Cash"] == "shop.common.Money"
    assert parsed.imports["dt"] == "datetime"
    assert parsed.type_vars == {"T"}
    assert "Tags" in parsed.aliases
    assert _classes(parsed)["shop.orders.models.Box"].type_params == ("T",)


def test_evaluate_literal_handles_non_literals() -> None:
    assert evaluate_literal(ast.parse("(1, 2)", mode="eval").body) == [1, 2]
    assert evaluate_literal(ast.parse("Colour.RED", mode="eval").body) == MemberRef(
        ("Colour", "RED")
    )
    assert evaluate_literal(ast.parse("compute()", mode="eval").body) == Unrenderable(
        "compute()"
    )
