"""Shared fixtures for the keel test suite."""

import logging
from collections.abc import Iterator

import pytest


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def restore_keel_logger() -> Iterator[logging.Logger]:
    """Undo handler and level changes made to the ``keel`` logger."""
    logger = logging.getLogger("keel")
    handlers, level = list(logger.handlers), logger.level
    yield logger
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)
