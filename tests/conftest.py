"""
Pytest configuration and shared fixtures.

Run from the repository root:
  pytest

Nothing here talks to the network: upstream calls are replaced with fakes
or httpx.MockTransport, and every test gets its own cache directory.
"""

import os
import tempfile

# ── Must be set BEFORE any app imports ────────────────────────────────────────
os.environ.setdefault("DATA_GOV_API_KEY", "test-key")
os.environ.setdefault("CACHE_DIR", tempfile.mkdtemp(prefix="mgnrega-cache-"))
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient

from app import app
from services.cache import cache


# ── Sample upstream rows (data.gov.in returns every field as a string) ────────

def make_record(district: str, workers: int, women: float, sc: float, st: float,
                expenditure: float, wage: float = 250, days: float = 40,
                households: int = 1000, state: str = "KERALA") -> dict:
    return {
        "state_name": state,
        "district_name": district,
        "Total_Individuals_Worked": str(workers),
        "Total_Households_Worked": str(households),
        "Women_Persondays": str(women),
        "SC_persondays": str(sc),
        "ST_persondays": str(st),
        "Total_Exp": str(expenditure),
        "Average_Wage_rate_per_day_per_person": str(wage),
        "Average_days_of_employment_provided_per_Household": str(days),
    }


KERALA_RECORDS = [
    make_record("Kollam", 3000, 600, 300, 100, 120.0, wage=300, days=50, households=2000),
    make_record("Kottayam", 1000, 150, 40, 10, 40.0, wage=320, days=30, households=800),
    make_record("Wayanad", 2000, 300, 50, 150, 80.0, wage=310, days=40, households=1200),
]


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def isolated_cache(tmp_path, monkeypatch):
    """Point the shared cache at a fresh directory for each test."""
    monkeypatch.setattr(cache, "root", tmp_path / "cache")
    monkeypatch.setattr(cache, "write_failures", 0)
    yield cache


@pytest.fixture(scope="session")
def client():
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture
def kerala_records():
    return [dict(r) for r in KERALA_RECORDS]


@pytest.fixture
def fake_upstream(monkeypatch, kerala_records):
    """Replace the data.gov.in fetch with an in-memory fake.

    Set ``fake.error`` to make it raise, or ``fake.records`` to change data.
    """

    class FakeUpstream:
        def __init__(self):
            self.records = kerala_records
            self.error = None
            self.calls = []

        async def __call__(self, state, client=None):
            self.calls.append(state)
            if self.error is not None:
                raise self.error
            return self.records

    fake = FakeUpstream()
    monkeypatch.setattr("services.data_gov.fetch_state_records", fake)
    monkeypatch.setattr("services.mgnrega.fetch_state_records", fake)
    return fake
