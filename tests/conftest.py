from datetime import datetime, timezone

import pytest

from study_srs.db import init_db


@pytest.fixture
def tmp_db(tmp_path):
    """Provide an initialized temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_srs.db")
    init_db(db_path)
    return db_path


@pytest.fixture
def t0():
    """Fixed review clock."""
    return datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
