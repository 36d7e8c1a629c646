import os
from datetime import date, timedelta

import pytest

from novabook.library import Library


class FakeClock:
    """Stand-in for date.today that tests can move forward."""

    def __init__(self, today: date):
        self.current = today

    def __call__(self) -> date:
        return self.current

    def advance(self, days: int) -> None:
        self.current += timedelta(days=days)


@pytest.fixture
def clock():
    return FakeClock(date(2024, 3, 1))


@pytest.fixture
def lib(tmp_path, request, clock):
    # Unique database file per test
    db_file = str(tmp_path / f"test_{request.node.name}.db")
    lib = Library(db_file=db_file, today=clock)
    yield lib
    lib.close()
    if os.path.exists(db_file):
        os.remove(db_file)
