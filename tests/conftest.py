"""Shared fixtures for tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from loguru import logger

if TYPE_CHECKING:
    from collections.abc import Iterator

# ---------------------------------------------------------------------------
# Directory path -> pytest marker
# ---------------------------------------------------------------------------
_DIR_MARKER_MAP: dict[str, str] = {
    "/core/": "unit",
    "/delivery/": "unit",
    "/cli/": "integration",
}


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Mark tests by directory."""
    for item in items:
        fspath = str(item.fspath)
        for dir_pattern, marker_name in _DIR_MARKER_MAP.items():
            if dir_pattern in fspath:
                item.add_marker(getattr(pytest.mark, marker_name))
                break


@pytest.fixture
def loguru_messages() -> Iterator[list[str]]:
    """Messages of every loguru record emitted during the test."""
    messages: list[str] = []
    sink_id = logger.add(lambda msg: messages.append(msg.record["message"]), level="DEBUG")
    yield messages
    logger.remove(sink_id)
