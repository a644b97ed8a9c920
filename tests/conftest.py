from __future__ import annotations

from typing import Iterator

import pytest

from clpack.utils import configure_logging


@pytest.fixture(autouse=True)
def fresh_logging() -> Iterator[None]:
    # CliRunner swaps sys.stderr per invocation; rebind the handler for every test.
    configure_logging()
    yield
    configure_logging()
