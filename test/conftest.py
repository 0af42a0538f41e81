from __future__ import annotations

import os
from pathlib import Path

import pytest

# Load dotenv files early so settings read by the package pick them up
try:  # pragma: no cover
    from dotenv import load_dotenv

    TEST_ROOT = Path(__file__).resolve().parent
    # Load test/.env first, then fallback to test/.env.example for defaults
    load_dotenv(TEST_ROOT / ".env", override=False)
    load_dotenv(TEST_ROOT / ".env.example", override=False)
except Exception:
    pass

# The global engine is built on import; keep it off any real database
os.environ.setdefault("DEPOT_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


@pytest.fixture(scope="session")
def test_database_url() -> str:
    """In-memory SQLite URL used by database tests."""
    return "sqlite+aiosqlite:///:memory:"
