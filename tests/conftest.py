import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TIMEZONE"] = ""

import time  # noqa: E402
from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.aggregation import parse_timestamp  # noqa: E402
from app.backend import BackendError  # noqa: E402
from app.dashboard import DashboardStore  # noqa: E402
from app.database import Base, engine  # noqa: E402
from app.main import app  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    app.state.dashboards = DashboardStore()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


class FakeUser:
    def __init__(self, id=1, email="me@example.com"):
        self.id = id
        self.email = email


class FakeBackend:
    """In-memory stand-in that records every call."""

    def __init__(self, records=None):
        self.records = list(records or [])
        self.select_calls = []
        self.insert_calls = []
        self.fail_select = False
        self.fail_insert = False

    def select_expenses(self, user_id, start, end, fields=("title", "amount", "created_at")):
        self.select_calls.append(tuple(fields))
        if self.fail_select:
            raise BackendError("select expenses failed")
        rows = []
        for record in self.records:
            created_at = parse_timestamp(record["created_at"])
            if record.get("user_id", user_id) == user_id and start <= created_at <= end:
                rows.append({field: record[field] for field in fields})
        return rows

    def insert_expense(self, title, amount, user_id, created_at):
        self.insert_calls.append((title, amount, user_id, created_at))
        if self.fail_insert:
            raise BackendError("insert expense failed")
        self.records.append({
            "title": title,
            "amount": amount,
            "user_id": user_id,
            "created_at": created_at.isoformat(),
        })


@pytest.fixture
def new_york_time():
    """Run with the server clock set to US Eastern time."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available")
    previous = os.environ.get("TZ")
    os.environ["TZ"] = "America/New_York"
    time.tzset()
    yield
    if previous is None:
        del os.environ["TZ"]
    else:
        os.environ["TZ"] = previous
    time.tzset()


@pytest.fixture
def user():
    return FakeUser()


@pytest.fixture
def fake_backend():
    return FakeBackend()


def fixed_clock(moment: datetime):
    return lambda: moment
