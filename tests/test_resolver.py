"""Tests for schemagen.resolver."""

from __future__ import annotations

import pytest

from schemagen.errors import ConfigurationError, ResolutionError
from schemagen.models import MISSING
from schemagen.resolver import AnnotationResolver, check_default, is_json_value
from schemagen.typemodel import (
    ArrayNode,
    EnumNode,
    MapNode,
    OptionalNode,
    PrimitiveNode,
    TypeModelCache,
    TypeModelExtractor,
    UnionNode,
)


def _resolve(source_tree, text, name, policy="default-satisfies"):
    source_tree.write({"models.py": text})
    result = source_tree.discover()
    extractor = TypeModelExtractor(result.index, TypeModelCache())
    model = extractor.extract(result.index.get(name))
    AnnotationResolver(policy=policy).resolve(model)
    return {prop.name: prop.node.annotations for prop in model.properties}


def test_resolver_derives_required_from_defaults_and_optionality(source_tree) -> None:
    annotations = _resolve(
        source_tree,
        """
        from typing import Optional


        class Person:
            name: str
            age: int = 0
            nickname: Optional[str]
        """,
        "models.Person",
    )

    assert annotations["name"]["required"] is True
    assert annotations["name"]["has_default"] is False
    assert annotations["age"]["required"] is False
    assert annotations["age"]["default"] == 0
    assert annotations["nickname"]["required"] is False
    assert annotations["nickname"]["default"] is MISSING


def test_higher_precedence_sources_win(source_tree) -> None:
    annotations = _resolve(
        source_tree,
        """
        from typing import Annotated

        from schemagen import generates_schema, schema_field


        class Base:
            code: str = schema_field(description="Base code", min_length=2)


        @generates_schema(required=False)
        class Item(Base):
            code: Annotated[str, schema_field(description="Annotated code")] = schema_field(
                max_length=8
            )
            label: str
        """,
        "models.Item",
    )

    code = annotations["code"]
    assert code["description"] == "Annotated code"
    assert code["hints"] == {"minLength": 2, "maxLength": 8}
    assert annotations["label"]["required"] is False


def test_explicit_required_with_default_is_allowed_by_default(source_tree) -> None:
    annotations = _resolve(
        source_tree,
        """
        from schemagen import schema_field


        class Job:
            retries: int = schema_field(3, required=True)
        """,
        "models.Job",
    )

    assert annotations["retries"]["required"] is True
    assert annotations["retries"]["has_default"] is True


def test_strict_policy_rejects_required_with_default(source_tree) -> None:
    with pytest.raises(ResolutionError) as excinfo:
        _resolve(
            source_tree,
            """
            from schemagen import schema_field


            class Job:
                retries: int = schema_field(3, required=True)
            """,
            "models.Job",
            policy="strict",
        )

    assert excinfo.value.property_path == "models.Job.retries"


@pytest.mark.parametrize(
    "declaration, fragment",
    [
        ("count: int = 'many'", "does not match type integer"),
        ("enabled: int = True", "does not match type integer"),
        ("tags: list[str] = [1, 2]", "does not match type list[string]"),
        ("colour: Colour = Colour.BLUE", "is not a member"),
        ("size: int = schema_field(1, bogus=2)", "unknown directive keyword(s): bogus"),
    ],
)
def test_resolver_rejects_invalid_directives(source_tree, declaration, fragment) -> None:
    with pytest.raises(ResolutionError) as excinfo:
        _resolve(
            source_tree,
            f"""
            import enum

            from schemagen import schema_field


            class Colour(enum.Enum):
                RED = "red"


            class Widget:
                {declaration}
            """,
            "models.Widget",
        )

    assert fragment in str(excinfo.value)
    assert str(excinfo.value).startswith("models.Widget.")


def test_conflicting_required_at_same_level_is_an_error(source_tree) -> None:
    with pytest.raises(ResolutionError) as excinfo:
        _resolve(
            source_tree,
            """
            from typing import Annotated, Required

            from schemagen import schema_field


            class Form:
                email: Annotated[Required[str], schema_field(required=False)]
            """,
            "models.Form",
        )

    assert "conflicting required declarations at annotation level" in str(excinfo.value)


def test_member_defaults_resolve_to_enum_values(source_tree) -> None:
    annotations = _resolve(
        source_tree,
        """
        import enum
        from typing import Optional


        class Colour(str, enum.Enum):
            RED = "red"
            BLUE = "blue"


        class Paint:
            colour: Optional[Colour] = Colour.BLUE
            fallback: str = DEFAULTS.name
        """,
        "models.Paint",
    )

    assert annotations["colour"]["default"] == "blue"
    assert annotations["fallback"]["has_default"] is True
    assert annotations["fallback"]["default"] is MISSING


def test_accessors_are_read_only_and_use_docstrings(source_tree) -> None:
    annotations = _resolve(
        source_tree,
        """
        class Account:
            @property
            def balance(self) -> float:
                \"\"\"Current balance.\"\"\"
                return 0.0
        """,
        "models.Account",
    )

    assert annotations["balance"]["read_only"] is True
    assert annotations["balance"]["write_only"] is False
    assert annotations["balance"]["description"] == "Current balance."


def test_resolution_outcome_is_cached_on_the_model(source_tree) -> None:
    source_tree.write(
        {
            "models.py": """
            class Broken:
                count: int = "x"
            """
        }
    )
    result = source_tree.discover()
    extractor = TypeModelExtractor(result.index, TypeModelCache())
    model = extractor.extract(result.index.get("models.Broken"))
    resolver = AnnotationResolver()

    with pytest.raises(ResolutionError):
        resolver.resolve(model)
    with pytest.raises(ResolutionError):
        resolver.resolve(model)
    assert model.resolution_error is not None
    assert model.resolved is False


def test_unknown_policy_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        AnnotationResolver(policy="lenient")


def test_check_default_is_type_strict() -> None:
    assert check_default(PrimitiveNode("number"), 1)
    assert not check_default(PrimitiveNode("number"), False)
    assert check_default(OptionalNode(PrimitiveNode("string")), None)
    assert check_default(ArrayNode(PrimitiveNode("integer")), [1, 2])
    assert check_default(MapNode(PrimitiveNode("boolean")), {"a": True})
    assert not check_default(MapNode(PrimitiveNode("boolean")), {"a": 1})
    assert check_default(EnumNode((1, 2)), 2)
    assert not check_default(EnumNode((1, 2)), True)
    assert check_default(UnionNode((PrimitiveNode("integer"), PrimitiveNode("string"))), "x")


@pytest.mark.parametrize(
    "declaration, fragment",
    [
        ('table: Any = {(1, 2): "x"}', "is not valid JSON"),
        ("ceiling: float = 1e999", "default inf is not valid JSON"),
        ("ratio: float = schema_field(0.5, maximum=1e999)", "schema keyword maximum"),
    ],
)
def test_resolver_rejects_values_json_cannot_encode(source_tree, declaration, fragment) -> None:
    with pytest.raises(ResolutionError) as excinfo:
        _resolve(
            source_tree,
            f"""
            from typing import Any

            from schemagen import schema_field


            class Limits:
                {declaration}
            """,
            "models.Limits",
        )

    assert fragment in str(excinfo.value)
    assert excinfo.value.property_path.startswith("models.Limits.")


def test_is_json_value_requires_string_keys_and_finite_numbers() -> None:
    assert is_json_value({"a": [1, 2.5, None, True]})
    assert not is_json_value({1: "a"})
    assert not is_json_value([float("nan")])
    assert not is_json_value(float("-inf"))
