"""CLI behaviour tests."""

from __future__ import annotations

import pytest
import yaml

from schemagen.cli import _build_parser, main

MODELS = """
from schemagen import generates_schema


@generates_schema
class Person:
    name: str
    age: int = 0
"""


def test_cli_accepts_verbose_before_and_after_command() -> None:
    parser = _build_parser()
    assert parser.parse_args(["--verbose", "discover", "src"]).verbose is True
    assert parser.parse_args(["discover", "src", "--verbose"]).verbose is True


def test_cli_generate_flags() -> None:
    parser = _build_parser()
    args = parser.parse_args(
        [
            "generate",
            "src",
            "lib.zip",
            "-o",
            "out",
            "--allowed-package",
            "shop",
            "--allowed-package",
            "billing.*",
            "--layout",
            "flat",
            "--workers",
            "3",
            "--strict-required",
        ]
    )
    assert args.roots == ["src", "lib.zip"]
    assert args.allowed_packages == ["shop", "billing.*"]
    assert args.layout == "flat"
    assert args.workers == 3
    assert args.strict_required is True


def test_generate_succeeds_with_exit_code_zero(source_tree, capsys) -> None:
    source_tree.write({"models.py": MODELS})

    main(
        [
            "generate",
            str(source_tree.root),
            "-o",
            str(source_tree.output),
            "--config",
            str(source_tree.base),
        ]
    )

    assert (source_tree.output / "models" / "Person.json").is_file()
    assert "1 schema(s) written" in capsys.readouterr().out


def test_generate_reports_failures_with_exit_code_one(source_tree, capsys) -> None:
    source_tree.write(
        {
            "models.py": MODELS
            + """

@generates_schema
class Broken:
    size: int = "large"
"""
        }
    )

    with pytest.raises(SystemExit) as excinfo:
        main(
            [
                "generate",
                str(source_tree.root),
                "-o",
                str(source_tree.output),
                "--config",
                str(source_tree.base),
            ]
        )

    assert excinfo.value.code == 1
    err = capsys.readouterr().err
    assert "FAILED models.Broken [resolve]: models.Broken.size:" in err
    assert (source_tree.output / "models" / "Person.json").is_file()


def test_configuration_errors_exit_with_code_two(source_tree, capsys) -> None:
    (source_tree.base / ".schemagen.yml").write_text("workers: 0\n", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        main(["generate", str(source_tree.root), "-o", "out", "--config", str(source_tree.base)])

    assert excinfo.value.code == 2
    assert "workers must be a positive integer" in capsys.readouterr().err


def test_missing_root_exits_with_code_two(source_tree, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(
            [
                "generate",
                str(source_tree.base / "absent"),
                "-o",
                str(source_tree.output),
                "--config",
                str(source_tree.base),
            ]
        )

    assert excinfo.value.code == 2


def test_echo_only_prints_effective_config(source_tree, capsys) -> None:
    main(
        [
            "generate",
            str(source_tree.root),
            "-o",
            "out",
            "--config",
            str(source_tree.base),
            "--layout",
            "flat",
            "--strict-required",
            "--echo-only",
        ]
    )

    payload = yaml.safe_load(capsys.readouterr().out)
    assert payload["output"]["layout"] == "flat"
    assert payload["schema"]["required_default_policy"] == "strict"
    assert payload["roots"] == [str(source_tree.root)]
    assert not source_tree.output.exists()


def test_discover_lists_classes(source_tree, capsys) -> None:
    source_tree.write({"models.py": MODELS})

    main(["discover", str(source_tree.root), "--config", str(source_tree.base)])

    out = capsys.readouterr().out
    assert out.startswith("models.Person\tmodels.py:")
