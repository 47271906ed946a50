"""Fixtures compartidos: SQLite en memoria, usuarios y cliente HTTP."""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_notifier
from app.core.database import Base, get_db
from app.core.permissions import AuthorizationEngine
from app.core.security import create_access_token
from app.main import app
from app.models.group import Visibility
from app.models.user import Tier, User
from app.services.groups import create_group
from app.services.identity import SqlIdentityProvider


class RecordingNotifier:
    def __init__(self):
        self.events = []

    def group_created(self, user, group):
        self.events.append(("group_created", group.id, user.id))

    def group_deleted(self, group_id):
        self.events.append(("group_deleted", group_id, None))

    def membership_requested(self, user, group):
        self.events.append(("membership_requested", group.id, user.id))

    def membership_approved(self, user, group):
        self.events.append(("membership_approved", group.id, user.id))


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(plan=Tier.NONE, is_admin=False, email=None):
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@demo.com",
            hashed_password="not-a-real-hash",
            plan=plan,
            is_admin=is_admin,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(is_admin=True)


@pytest.fixture
def basic_user(make_user):
    return make_user(plan=Tier.BASIC)


@pytest.fixture
def premium_user(make_user):
    return make_user(plan=Tier.PREMIUM)


@pytest.fixture
def free_user(make_user):
    return make_user(plan=Tier.NONE)


@pytest.fixture
def make_group(db):
    def _make(creator, visibility=Visibility.PUBLIC, title="Grupo"):
        return create_group(db, creator, title, visibility)

    return _make


@pytest.fixture
def authz(db):
    return AuthorizationEngine(SqlIdentityProvider(db))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(session_factory, notifier):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}

    return _headers
