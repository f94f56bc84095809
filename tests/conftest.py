# tests/conftest.py
"""
Pytest configuration and fixtures.
"""

import os
from datetime import datetime

import pytest

# Set test environment before app.config is imported anywhere
os.environ.setdefault("TESTING", "1")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_JSON", "false")

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.database import Base  # noqa: E402
from app import models  # noqa: E402


@pytest.fixture
def db_session():
    """Fresh in-memory SQLite database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = Session()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def client(db_session):
    """TestClient bound to the per-test database."""
    from fastapi.testclient import TestClient

    from app.database import get_db
    from app.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def add_team(db, name, room=None, created_at=None):
    team = models.Team(
        name=name,
        description=f"{name} description",
        password_hash="$2b$12$notarealhash",
        room=room,
        created_at=created_at or datetime(2024, 11, 20, 18, 0),
    )
    db.add(team)
    db.flush()
    return team


def add_member(db, team, first_name, last_name, **kwargs):
    values = {
        "email": f"{first_name.lower()}.{last_name.lower()}@example.org",
        "bac_level": 2,
        "food_diet": "",
        "created_at": datetime(2024, 11, 20, 18, 30),
    }
    values.update(kwargs)
    member = models.Member(team_id=team.id, first_name=first_name, last_name=last_name, **values)
    db.add(member)
    db.flush()
    return member


def seed_event(db):
    """
    Two teams, five members, one paid online (500 cents), one payment event.

    Registrations are clustered in November 2024.
    """
    alpha = add_team(db, "Alpha", room="B101")
    beta = add_team(db, "Beta", room="B102")

    paid = add_member(
        db,
        alpha,
        "Alice",
        "Martin",
        is_leader=True,
        bac_level=3,
        food_diet="vegetarian",
        checked_in=True,
        payment_status=models.PaymentStatus.PAID.value,
        payment_method=models.PaymentMethod.ONLINE.value,
        checkout_id="chk_alice",
        transaction_id="txn_alice",
        payment_amount=500,
        registration_tier="early",
    )
    add_member(db, alpha, "Bob", "Durand", checked_in=True)
    add_member(db, alpha, "Chloe", "Petit", food_diet="vegan")
    add_member(db, beta, "David", "Moreau", is_leader=True, bac_level=5)
    add_member(db, beta, "Emma", "Leroy")

    db.add(
        models.PaymentEvent(
            member_id=paid.id,
            checkout_id="chk_alice",
            event_type=models.PaymentEventType.PAYMENT_COMPLETED.value,
            amount=500,
            tier="early",
            event_metadata='{"email": "alice.martin@example.org"}',
            created_at=datetime(2024, 11, 21, 9, 0),
        )
    )
    db.commit()
    return {"teams": [alpha, beta], "paid_member": paid}


@pytest.fixture
def seeded_db(db_session):
    seed_event(db_session)
    return db_session


@pytest.fixture
def make_team(db_session):
    return lambda name, **kwargs: add_team(db_session, name, **kwargs)


@pytest.fixture
def make_member(db_session):
    return lambda team, first_name, last_name, **kwargs: add_member(
        db_session, team, first_name, last_name, **kwargs
    )
