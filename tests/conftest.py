"""
Shared pytest fixtures for Element Fusion tests.

Provides:
  - In-memory SQLite DB with migrations applied
  - FastAPI TestClient on a fresh per-test database file
  - In-memory LocalStore
  - The loaded element catalog and a small fixed catalog
  - Helpers for building workspace states
"""

import os
import sqlite3
import sys
import tempfile
from pathlib import Path
from typing import Generator, List, Tuple

import pytest

# ---------------------------------------------------------------------------
# Ensure the project root is on sys.path so we can import app modules
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Use a writable temp directory for the test DB and local store so nothing lands in the repo.
_TEST_DB_DIR = tempfile.mkdtemp(prefix="fusion_test_")
os.environ["DB_DIR"] = _TEST_DB_DIR
os.environ["FUSION_LOCAL_STORE"] = str(Path(_TEST_DB_DIR) / "local_store.db")
# Nothing in the test suite may reach the network.
os.environ["FUSION_API_BASE_URL"] = "http://fusion.invalid"
os.environ["FUSION_COUNTRY_LOOKUP_URL"] = "http://country.invalid/json/"


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def db_conn() -> Generator[sqlite3.Connection, None, None]:
    """Yield an in-memory SQLite connection with all migrations applied."""
    from db_migrations import apply_migrations

    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    apply_migrations(conn)

    yield conn
    conn.close()


# ---------------------------------------------------------------------------
# FastAPI TestClient
# ---------------------------------------------------------------------------

@pytest.fixture()
def client(tmp_path, monkeypatch):
    """Return a Starlette TestClient wired to the FastAPI app.

    Each test gets its own database file so ranks never leak between tests.
    """
    import db
    from fastapi.testclient import TestClient
    from main import app

    monkeypatch.setattr(db, "DB_PATH", tmp_path / "fusion.db")
    with TestClient(app) as c:
        yield c


# ---------------------------------------------------------------------------
# Local persistence
# ---------------------------------------------------------------------------

@pytest.fixture()
def store():
    from local_store import LocalStore

    s = LocalStore(Path(":memory:"))
    yield s
    s.close()


# ---------------------------------------------------------------------------
# Catalogs
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def catalog():
    import element_catalog
    return element_catalog.load_catalog()


@pytest.fixture(scope="session")
def small_catalog():
    """H..Ca from the embedded set; Ca is the last element."""
    import element_catalog

    return element_catalog.ElementCatalog(
        [element_catalog.normalize_element(e) for e in element_catalog.FALLBACK_ELEMENTS]
    )


# ---------------------------------------------------------------------------
# Test data helpers
# ---------------------------------------------------------------------------

class TestHelpers:
    """Stateless helper methods for common test-data operations."""

    @staticmethod
    def place_pair(state, catalog, symbol: str, first: Tuple[float, float] = (0, 0), second: Tuple[float, float] = (100, 40)):
        """Place two copies of ``symbol``; returns (state, first_id, second_id)."""
        import progression_service

        a = progression_service.place_element(state, symbol, first[0], first[1], catalog)
        b = progression_service.place_element(a.state, symbol, second[0], second[1], catalog)
        return b.state, a.record.id, b.record.id

    @staticmethod
    def discovered_with(symbols: List[str], energy: float = 100, merge_count: int = 0):
        import progression_service
        return progression_service.build_progression(symbols, merge_count=merge_count, fusion_energy=energy)


@pytest.fixture()
def helpers() -> TestHelpers:
    return TestHelpers()
