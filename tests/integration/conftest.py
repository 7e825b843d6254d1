import os
from collections.abc import Generator
from typing import Any

import psycopg
import pytest

from app.config.settings import Settings
from app.database.connection import close_pool, get_connection, init_pool


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "fleet_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            conn.execute("SELECT 1")
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run.")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def seed_trucks(db_conn: psycopg.Connection[Any]) -> Generator[list[tuple[str, str]], None, None]:
    rows = [("it-truck-2", "ZZZ-002"), ("it-truck-1", "ZZZ-001")]
    with db_conn.cursor() as cur:
        cur.execute(
            "CREATE TABLE IF NOT EXISTS trucks (id TEXT PRIMARY KEY, truck_plate TEXT)"
        )
        cur.executemany(
            "INSERT INTO trucks (id, truck_plate) VALUES (%s, %s) ON CONFLICT (id) DO NOTHING",
            rows,
        )
    db_conn.commit()
    try:
        yield rows
    finally:
        with db_conn.cursor() as cur:
            cur.execute("DELETE FROM trucks WHERE id = ANY(%s)", ([r[0] for r in rows],))
        db_conn.commit()
