import os
import random
from collections.abc import Generator

import pytest

from htr_worker.config.settings import Settings
from htr_worker.database.connection import close_pool, ensure_schema, get_connection, init_pool


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "transkribus_process_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        ensure_schema()
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to point at one.")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def process_ids(integration_pool: None) -> Generator[list[int], None, None]:
    """Fresh process ids for one test; their rows are deleted afterwards."""
    ids = random.sample(range(1_000_000_000, 2_000_000_000), 5)
    yield ids
    with get_connection() as conn:
        conn.execute("DELETE FROM pages WHERE process_id = ANY(%s)", (ids,))
        conn.commit()
