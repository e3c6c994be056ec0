"""Shared test fixtures — artifact files, settings, parse helpers."""

import os

# Keep a developer's shell or .env from changing engine defaults.
for _key in [k for k in os.environ if k.startswith("FRAMESHIFT_")]:
    del os.environ[_key]

from collections.abc import Iterator
from pathlib import Path

import pytest

from frameshift.analysis.nodes import Node, text, walk
from frameshift.analysis.parser import SyntaxTree, parse_source
from frameshift.analysis.schemas import ClassificationProfile
from frameshift.config import Settings
from frameshift.constants import Category, Dialect

FIXTURE_DIR = Path(__file__).resolve().parent / "fixtures"


def load_fixture(name: str) -> str:
    """Text of an artifact under tests/fixtures."""
    return (FIXTURE_DIR / name).read_text(encoding="utf-8")


def parse(code: str, dialect: Dialect = Dialect.JSX) -> SyntaxTree:
    """Parse code that is expected to be valid."""
    result = parse_source(code, dialect)
    assert isinstance(result, SyntaxTree), result
    return result


def nodes_of(root: Node, node_type: str, spelled: str | None = None) -> Iterator[Node]:
    for node in walk(root):
        if node.type == node_type and (spelled is None or text(node) == spelled):
            yield node


def first_node(root: Node, node_type: str, spelled: str | None = None) -> Node:
    """First node of a type (optionally with exact text) in document order."""
    found = next(nodes_of(root, node_type, spelled), None)
    assert found is not None, f"no {node_type} {spelled or ''} in tree"
    return found


def make_profile(
    category: Category = Category.EFFECT, confidence: int = 80
) -> ClassificationProfile:
    return ClassificationProfile(
        primary_category=category, confidence_score=confidence
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)  # type: ignore[call-arg]


@pytest.fixture
def particles_source() -> str:
    return load_fixture("particles.jsx")


@pytest.fixture
def carousel_source() -> str:
    return load_fixture("carousel.jsx")


@pytest.fixture
def corrupted_source() -> str:
    return load_fixture("corrupted_font.jsx")


@pytest.fixture
def truncated_source() -> str:
    return load_fixture("truncated.jsx")
