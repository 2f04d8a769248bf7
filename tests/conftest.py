"""
Pytest fixtures for the expense tracker test suite.

Provides:
- An in-memory SQLite session shared by the app and the test
- One user per role plus a second basic user
- A FastAPI TestClient and bearer-token headers per user
"""

import os
import tempfile

# Configure before expense_tracker.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", os.path.join(tempfile.gettempdir(), "expense_tracker_test_uploads"))
os.environ.setdefault("SECRET_KEY", "test-secret")

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import expense_tracker.models  # noqa: F401
from expense_tracker.database import Base, get_db
from expense_tracker.main import app
from expense_tracker.models.category import Category
from expense_tracker.models.expense import Expense
from expense_tracker.models.users import Role, User
from expense_tracker.services.permissions import Actor
from expense_tracker.utils.tokenJWT import create_access_token


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


def _make_user(db, user_id, role, first_name, email):
    user = User(id=user_id, email=email, first_name=first_name, last_name="Tester", role=role.value)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def basic_user(db):
    return _make_user(db, "user-1", Role.USER, "Basia", "basia@example.com")


@pytest.fixture
def other_user(db):
    return _make_user(db, "user-2", Role.USER, "Olek", "olek@example.com")


@pytest.fixture
def approver(db):
    return _make_user(db, "approver-1", Role.APPROVER, "Adam", "adam@example.com")


@pytest.fixture
def admin(db):
    return _make_user(db, "admin-1", Role.ADMIN, "Ewa", "ewa@example.com")


def actor_for(user) -> Actor:
    return Actor.from_user(user)


@pytest.fixture
def travel(db):
    category = Category(name="Travel", description="Trips", color="#F97316")
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@pytest.fixture
def meals(db):
    category = Category(name="Meals", color="#8B5CF6")
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@pytest.fixture
def make_expense(db):
    """Insert an expense row directly, bypassing the service rules."""

    def _make(owner, category, amount="10.00", status="pending", on=None, description="Taxi"):
        expense = Expense(
            user_id=owner.id,
            category_id=category.id,
            description=description,
            amount=Decimal(amount),
            date=on or date(2024, 5, 10),
            status=status,
        )
        db.add(expense)
        db.commit()
        db.refresh(expense)
        return expense

    return _make


@pytest.fixture
def client(db):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth_headers(user) -> dict:
    token = create_access_token({"sub": user.id})
    return {"Authorization": f"Bearer {token}"}
