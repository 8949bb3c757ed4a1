"""Shared fixtures: a fresh SQLite database per test."""
from datetime import datetime, timezone

import pytest

from analytics.move_analytics import Move
from db.database import Database

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def db(tmp_path) -> Database:
    """Database backed by a temp file."""
    return Database(str(tmp_path / "negotiations.db"))


@pytest.fixture
def negotiation(db: Database) -> dict:
    return db.create_negotiation({"name": "Smith v. Acme Trucking", "settlement_goal": 500000})


@pytest.fixture
def client(db: Database, monkeypatch):
    """API client wired to the temp database."""
    from fastapi.testclient import TestClient
    import app.main as main

    monkeypatch.setattr(main, "_db", db)
    return TestClient(main.app)


def make_moves(*entries):
    """Build a chronological move list from (party, type, amount) tuples."""
    return [Move(party=p, type=t, amount=a, id=i + 1) for i, (p, t, a) in enumerate(entries)]
