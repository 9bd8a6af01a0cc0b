"""Pytest configuration and shared fixtures."""

from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from featurefactory.config import MappingStoreConfig
from featurefactory.features import FeatureFactory


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def mapping_dir(tmp_path: Path) -> Path:
    """Directory receiving dynamic mapping files."""
    directory = tmp_path / "mappings"
    directory.mkdir()
    return directory


@pytest.fixture
def mapping_store(mapping_dir: Path) -> MappingStoreConfig:
    """Mapping store confined to the test's temporary directory."""
    return MappingStoreConfig(directory=mapping_dir, identity="tests")


@pytest.fixture
def word_functions() -> dict[str, Callable[..., Any]]:
    """Feature functions operating on a single word."""
    return {
        "length": len,
        "first_char": lambda word: word[:1],
        "word": lambda word: word,
        "is_upper": lambda word: word.isupper(),
        "nothing": lambda word: None,
    }


@pytest.fixture
def word_declarations() -> list[dict[str, Any]]:
    """The classic pair: a bounded integer and a three-valued category."""
    return [
        {"name": "length", "type": "integer", "range": "0..5"},
        {"name": "first_char", "type": "categorical", "values": ["a", "b", "c"]},
    ]


@pytest.fixture
def make_factory(
    mapping_store: MappingStoreConfig,
    word_functions: dict[str, Callable[..., Any]],
) -> Iterator[Callable[..., FeatureFactory]]:
    """Build factories with test defaults; all are closed on teardown."""
    created: list[FeatureFactory] = []

    def _make(
        declarations: list[dict[str, Any]],
        options: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> FeatureFactory:
        kwargs.setdefault("functions", word_functions)
        kwargs.setdefault("mapping_store", mapping_store)
        factory = FeatureFactory(options, declarations=declarations, **kwargs)
        created.append(factory)
        return factory

    yield _make

    for factory in created:
        factory.close()
