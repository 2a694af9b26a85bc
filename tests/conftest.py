"""
tests/conftest.py
Shared fixtures: every test gets its own throwaway SQLite file.
"""

import pytest

from screener.db import Database


@pytest.fixture
def db(tmp_path):
    database = Database(str(tmp_path / "screener_test.db"))
    yield database
    database.close()
