from __future__ import annotations

import pytest

from builders import FakeTable
from cwl_medals import WarRoundStorage


@pytest.fixture
def fake_table() -> FakeTable:
    return FakeTable()


@pytest.fixture
def storage(fake_table: FakeTable) -> WarRoundStorage:
    return WarRoundStorage(fake_table)
