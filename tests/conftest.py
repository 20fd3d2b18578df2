from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from leanintel.logging import ROOT_LOGGER
from tests._fixtures.repo_builder import RepoBuilder


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """A throwaway project directory under tmp_path."""
    return RepoBuilder(tmp_path)


@pytest.fixture(autouse=True)
def _isolated_logging() -> Iterator[None]:
    """Let caplog see lean_intel records even after a CLI test configured handlers."""
    yield
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
