from __future__ import annotations

import pytest

from fakes import Bench


@pytest.fixture
def bench() -> Bench:
    return Bench()
