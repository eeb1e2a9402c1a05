"""Shared fixtures: Go source trees under tmp_path and configurations."""

import textwrap
from pathlib import Path
from typing import Callable

import pytest

from gqlschemagen.core.config import GeneratorConfig, load_config
from gqlschemagen.core.directives import annotate_index
from gqlschemagen.core.schema import ResolvedSchema
from gqlschemagen.golang.scanner import SourceScanner
from gqlschemagen.pipeline import SchemaPipeline
from gqlschemagen.resolver.resolver import Resolver


@pytest.fixture
def write_go(tmp_path: Path) -> Callable[..., Path]:
    def _write_go(name: str, source: str, directory: str = "models") -> Path:
        path = tmp_path / directory / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(source).lstrip(), encoding="utf-8")
        return path

    return _write_go


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., GeneratorConfig]:
    def _make_config(**overrides: object) -> GeneratorConfig:
        values = {
            "packages": [str(tmp_path / "models")],
            "output": str(tmp_path / "schema"),
            "strategy": "single",
        }
        values.update(overrides)
        return load_config(custom_config=values)

    return _make_config


@pytest.fixture
def resolve(make_config) -> Callable[..., ResolvedSchema]:
    def _resolve(**overrides: object) -> ResolvedSchema:
        config = make_config(**overrides)
        index = SourceScanner(config.packages).scan()
        annotate_index(index)
        return Resolver(index, config).resolve()

    return _resolve


@pytest.fixture
def generate(make_config, tmp_path: Path) -> Callable[..., str]:
    """Run the whole pipeline into a single file and return its content."""

    def _generate(**overrides: object) -> str:
        config = make_config(**overrides)
        SchemaPipeline(config).run()
        return (tmp_path / "schema" / config.output_file_name).read_text(encoding="utf-8")

    return _generate
