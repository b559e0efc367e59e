"""Tests for schemagen.discovery.scanner."""

from __future__ import annotations

import pytest

from schemagen.discovery import DiscoveryScanner
from schemagen.errors import ConfigurationError
from schemagen.models import Stage


def test_scan_returns_marked_classes_sorted_by_qualified_name(source_tree) -> None:
    source_tree.write(
        {
            "shop/__init__.py": "",
            "shop/orders.py": """
            from schemagen import generates_schema


            @generates_schema
            class Order:
                id: str


            class Draft:
                id: str
            """,
            "shop/customers.py": """
            from schemagen import generates_schema


            @generates_schema()
            class Customer:
                name: str


            @generates_schema
            class Address:
                street: str
            """,
        }
    )

    result = source_tree.discover()

    assert [descriptor.qualified_name for descriptor in result.descriptors] == [
        "shop.customers.Address",
        "shop.customers.Customer",
        "shop.orders.Order",
    ]
    assert "shop.orders.Draft" in result.index
    assert result.failures == []


def test_scan_filters_by_allowed_packages(source_tree) -> None:
    source_tree.write(
        {
            "shop/models.py": """
            from schemagen import generates_schema


            @generates_schema
            class Order:
                id: str
            """,
            "billing/models.py": """
            from schemagen import generates_schema


            @generates_schema
            class Invoice:
                id: str
            """,
        }
    )

    result = source_tree.discover(allowed_packages=["billing"])

    assert [descriptor.name for descriptor in result.descriptors] == ["Invoice"]


def test_scan_honours_custom_markers(source_tree) -> None:
    source_tree.write(
        {
            "models.py": """
            from schemagen import generates_schema


            def json_model(cls):
                return cls


            @json_model
            class Legacy:
                id: str


            @generates_schema
            class Current:
                id: str
            """
        }
    )

    result = source_tree.discover(markers=["json_model"])

    assert [descriptor.name for descriptor in result.descriptors] == ["Legacy"]


def test_scan_reports_abstract_class_without_variants(source_tree) -> None:
    source_tree.write(
        {
            "models.py": """
            from abc import ABC

            from schemagen import generates_schema


            @generates_schema
            class Shape(ABC):
                name: str


            @generates_schema
            class Label:
                text: str
            """
        }
    )

    result = source_tree.discover()

    assert [descriptor.name for descriptor in result.descriptors] == ["Label"]
    assert len(result.failures) == 1
    failure = result.failures[0]
    assert failure.qualified_name == "models.Shape"
    assert failure.stage is Stage.DISCOVER
    assert failure.error_type == "ExtractionError"
    assert "models.Shape" in failure.cause


def test_scan_skips_modules_with_syntax_errors(source_tree) -> None:
    source_tree.write(
        {
            "broken.py": "class Broken(:\n",
            "models.py": """
            from schemagen import generates_schema


            @generates_schema
            class Fine:
                id: str
            """,
        }
    )

    result = source_tree.discover()

    assert [descriptor.name for descriptor in result.descriptors] == ["Fine"]


def test_scan_keeps_duplicates_from_later_roots(source_tree) -> None:
    module = """
    from schemagen import generates_schema


    @generates_schema
    class Twin:
        id: str
    """
    source_tree.write({"models.py": module})
    second = source_tree.write({"models.py": module}, root=source_tree.extra_root("second"))

    scanner = DiscoveryScanner()
    result = scanner.scan([source_tree.root, second])

    roots = [descriptor.source.root for descriptor in result.descriptors]
    assert [descriptor.qualified_name for descriptor in result.descriptors] == [
        "models.Twin",
        "models.Twin",
    ]
    assert roots == [str(source_tree.root.resolve()), str(second.resolve())]


def test_scan_rejects_missing_root(tmp_path) -> None:
    with pytest.raises(ConfigurationError):
        DiscoveryScanner().scan([tmp_path / "absent"])
