"""Tests for schemagen.source_scanner."""

from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from schemagen.errors import ConfigurationError
from schemagen.source_scanner import SourceScanner, module_name


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_scan_lists_python_modules_with_module_names(tmp_path: Path) -> None:
    root = tmp_path / "src"
    _write(root / "shop" / "__init__.py", "")
    _write(root / "shop" / "orders.py", "class Order: ...\n")
    _write(root / "shop" / "README.md", "# docs\n")
    _write(root / ".venv" / "lib.py", "print('nope')\n")
    _write(root / "shop" / "__pycache__" / "orders.py", "")

    files = SourceScanner().scan([root])

    assert [(source.path, source.module) for source in files] == [
        ("shop/__init__.py", "shop"),
        ("shop/orders.py", "shop.orders"),
    ]
    assert files[1].text == "class Order: ...\n"
    assert files[1].root == str(root.resolve())


def test_module_name_strips_package_init() -> None:
    assert module_name("pkg/sub/__init__.py") == "pkg.sub"
    assert module_name("pkg/models.py") == "pkg.models"
    assert module_name("top.py") == "top"


def test_scan_rejects_missing_root(tmp_path: Path) -> None:
    missing = tmp_path / "missing"
    with pytest.raises(ConfigurationError) as excinfo:
        SourceScanner().scan([missing])
    assert str(missing) in str(excinfo.value)


def test_scan_rejects_plain_file_root(tmp_path: Path) -> None:
    plain = tmp_path / "models.txt"
    plain.write_text("not an archive", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        SourceScanner().scan([plain])


def test_scan_requires_at_least_one_root() -> None:
    with pytest.raises(ConfigurationError):
        SourceScanner().scan([])


def test_scan_respects_gitignore_and_exclude_paths(tmp_path: Path) -> None:
    root = tmp_path / "src"
    _write(root / ".gitignore", "generated/\n*_pb2.py\n")
    _write(root / "app" / "models.py", "")
    _write(root / "app" / "events_pb2.py", "")
    _write(root / "generated" / "models.py", "")
    _write(root / "sandbox" / "scratch.py", "")

    files = SourceScanner(exclude_paths=["sandbox/"]).scan([root])

    assert [source.path for source in files] == ["app/models.py"]


def test_scan_reads_zip_archives(tmp_path: Path) -> None:
    archive_path = tmp_path / "models.zip"
    with zipfile.ZipFile(archive_path, "w") as archive:
        archive.writestr("pkg/__init__.py", "")
        archive.writestr("pkg/models.py", "class A: ...\n")
        archive.writestr("pkg/__pycache__/models.py", "")
        archive.writestr("pkg/data.json", "{}")

    files = SourceScanner().scan([archive_path])

    assert [source.module for source in files] == ["pkg", "pkg.models"]
    assert files[1].text == "class A: ...\n"


def test_scan_orders_by_module_then_root(tmp_path: Path) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"
    _write(first / "b.py", "")
    _write(second / "a.py", "")
    _write(second / "b.py", "")

    files = SourceScanner().scan([first, second])

    assert [(source.module, Path(source.root).name) for source in files] == [
        ("a", "second"),
        ("b", "first"),
        ("b", "second"),
    ]
