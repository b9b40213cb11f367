# pylint: disable=missing-module-docstring,missing-function-docstring

from typing import Iterator

import pytest

from observability import logger


@pytest.fixture(autouse=True)
def captured_log(monkeypatch: pytest.MonkeyPatch) -> Iterator[list[str]]:
    """Every JSONL line emitted during a test, at DEBUG level."""
    lines: list[str] = []
    monkeypatch.setattr(logger, "_print", lines.append)
    logger.configure(min_level="DEBUG", json_lines=True)
    yield lines
    logger.configure()
