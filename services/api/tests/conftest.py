import os

# Must be set before app.settings is imported
os.environ["SEED_ON_STARTUP"] = "false"
os.environ["CACHE_BACKEND"] = "memory"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db import Base, get_db, enable_sqlite_pragmas
from app.infra import cache as cache_module
from app.infra.cache import MemoryCache, get_cache
from app.models import Dish, User
from app.services.notifications import get_notifier
from app.services.seed import seed_household

# --- Test Database Setup ---

SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool  # Important for in-memory to share connection across threads/sessions
)
enable_sqlite_pragmas(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


class FakeNotifier:
    """Records new-order notifications instead of sending SMS."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    def notify_new_order(self, dish_count, note=None):
        if self.fail:
            raise RuntimeError("sms gateway down")
        self.sent.append((dish_count, note))


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def cache():
    c = MemoryCache()
    cache_module.reset_cache(c)
    yield c
    cache_module.reset_cache(None)


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def client(cache, notifier):
    """Test client with DB, cache and notifier overrides."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    """Direct database session for setup."""
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def file_sessions(tmp_path):
    """Session factory over a seeded file-backed SQLite database.

    Each session gets its own connection, so tests can overlap transactions
    the way concurrent requests do.
    """
    file_engine = create_engine(
        f"sqlite:///{tmp_path / 'kitchen.db'}",
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_pragmas(file_engine)
    Base.metadata.create_all(bind=file_engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=file_engine)
    with factory() as setup:
        seed_household(setup)
    yield factory
    file_engine.dispose()


@pytest.fixture
def household(db_session):
    """Seeded members, menu and visitor toggles."""
    seed_household(db_session)
    return db_session


@pytest.fixture
def chef(household):
    user = household.query(User).filter(User.role == "fulfiller").one()
    user.fingerprint = "fp-chef"
    household.commit()
    return user


@pytest.fixture
def diner(household):
    user = household.query(User).filter(User.role == "orderer").one()
    user.fingerprint = "fp-diner"
    household.commit()
    return user


@pytest.fixture
def visitor(db_session):
    user = User(name="Visitor", role="visitor", fingerprint="fp-visitor", is_whitelisted=False)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def dishes(household):
    """Three priced dishes, on top of the (free) seeded menu."""
    made = [
        Dish(name="Noodles", category="Noodles", price=8.0, spice_level=3),
        Dish(name="Dumplings", category="Appetizers", price=5.5, spice_level=0),
        Dish(name="Curry", category="Mains", price=12.0, spice_level=5),
    ]
    household.add_all(made)
    household.commit()
    for d in made:
        household.refresh(d)
    return made


def auth(user) -> dict:
    return {"X-Device-Fingerprint": user.fingerprint}
