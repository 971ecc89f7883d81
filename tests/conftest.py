"""Shared fixtures."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from splitvit.config import Settings
from splitvit.db import Database
from splitvit.models import AuthSession, AuthUser, Expense, Group, Member


@pytest.fixture
def mock_settings(tmp_path):
    """Create settings pointing at a temporary database."""
    return Settings(
        supabase_url="https://project.supabase.co",
        supabase_anon_key="anon-key",
        share_base_url="https://splitvit.example/",
        database_path=tmp_path / "splitvit.db",
    )


@pytest.fixture
def mock_db(mock_settings):
    """Create a temporary database."""
    db = Database(mock_settings.database_path)
    yield db
    db.close()


@pytest.fixture
def auth_session():
    """A signed-in session that has not expired."""
    return AuthSession(
        access_token="user-token",
        refresh_token="refresh-token",
        expires_at=datetime(2099, 1, 1, tzinfo=UTC),
        user=AuthUser(id="u1", email="aarav@example.com", full_name="Aarav Shah"),
    )


@pytest.fixture
def sample_group():
    """A stored group with three members and two expenses."""
    return Group(
        id="g1",
        name="Goa Trip",
        owner_id="u1",
        share_token="tok123",
        members=[
            Member(id="m1", name="Aarav"),
            Member(id="m2", name="Priya"),
            Member(id="m3", name="Rohan"),
        ],
        expenses=[
            Expense(
                id="e1",
                title="Dinner",
                amount=Decimal("90"),
                paid_by="Aarav",
                split_between=["Aarav", "Priya", "Rohan"],
            ),
            Expense(
                id="e2",
                title="Taxi",
                amount=Decimal("30"),
                paid_by="Priya",
                split_between=["Priya", "Rohan"],
            ),
        ],
    )
