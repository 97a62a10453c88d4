from __future__ import annotations

from pathlib import Path

import pytest

from includecheck.readers import MappingReader
from tests._fixtures.header_tree import HeaderTree
from tests._fixtures.car_tree import CAR_TREE


@pytest.fixture
def header_tree(tmp_path: Path) -> HeaderTree:
    """Provide a reusable header tree builder rooted at the pytest tmp_path."""
    return HeaderTree(tmp_path)


@pytest.fixture
def car_reader() -> MappingReader:
    """The in-memory car factory tree."""
    return MappingReader(CAR_TREE)
