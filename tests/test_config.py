"""Tests for schemagen.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from schemagen.config import DEFAULT_DIALECT, GeneratorConfig, load_config
from schemagen.errors import ConfigurationError


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, GeneratorConfig)
    assert config.root == tmp_path.resolve()
    assert config.markers == ["generates_schema"]
    assert config.allowed_packages == []
    assert config.allowed_subtype_packages == []
    assert config.workers == 1
    assert config.output.layout == "tree"
    assert config.output.indent == 2
    assert config.schema.dialect == DEFAULT_DIALECT
    assert config.schema.required_default_policy == "default-satisfies"


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".schemagen.yml"
    config_file.write_text(
        """
markers: [generates_schema, json_model]
allowed_packages:
  - shop
allowed_subtype_packages: shop.events
exclude_paths:
  - "migrations/"
workers: 4
output:
  layout: flat
  indent: 4
schema:
  dialect: "http://json-schema.org/draft-07/schema#"
  docstrings: false
  required_default_policy: strict
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.markers == ["generates_schema", "json_model"]
    assert config.allowed_packages == ["shop"]
    assert config.allowed_subtype_packages == ["shop.events"]
    assert config.exclude_paths == ["migrations/"]
    assert config.workers == 4
    assert config.output.layout == "flat"
    assert config.output.indent == 4
    assert config.schema.dialect == "http://json-schema.org/draft-07/schema#"
    assert config.schema.docstrings is False
    assert config.schema.required_default_policy == "strict"


def test_load_config_accepts_directory_path(tmp_path: Path) -> None:
    (tmp_path / ".schemagen.yml").write_text("workers: 3\n", encoding="utf-8")

    assert load_config(tmp_path).workers == 3


def test_load_config_treats_empty_file_as_defaults(tmp_path: Path) -> None:
    (tmp_path / ".schemagen.yml").write_text("\n", encoding="utf-8")

    assert load_config(tmp_path).markers == ["generates_schema"]


@pytest.mark.parametrize(
    "content",
    [
        "markers: [unclosed\n",
        "- just\n- a list\n",
        "workers: 0\n",
        "output:\n  layout: nested\n",
        "output:\n  indent: 0\n",
        "output:\n  indent: -2\n",
        "schema:\n  required_default_policy: lenient\n",
    ],
)
def test_load_config_rejects_invalid_content(tmp_path: Path, content: str) -> None:
    (tmp_path / ".schemagen.yml").write_text(content, encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_config(tmp_path)
