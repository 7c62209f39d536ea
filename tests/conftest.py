import os
import tempfile
import uuid

# Settings and the engine are built at import time, so the environment has
# to be in place before anything from dishub_monitor is imported.
_DB_PATH = os.path.join(tempfile.gettempdir(), f"dishub_test_{uuid.uuid4().hex[:8]}.db")
os.environ["DATABASE_URL"] = f"sqlite+pysqlite:///{_DB_PATH}"
os.environ.setdefault("DISHUB_ENV", "dev")
os.environ.setdefault("AUTO_CREATE_DB", "true")
os.environ.setdefault("AUTO_RUN_MIGRATIONS", "false")
os.environ.setdefault("AUTO_SEED_ADMIN_USER", "false")
os.environ.setdefault("AUTO_SEED_DEMO_DATA", "false")
os.environ.setdefault("DISHUB_JWT_SECRET", "test-jwt-secret-strong-value-123456")
os.environ.setdefault("DISHUB_PASSWORD_HASH_ROUNDS", "1000")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from dishub_monitor.core.security import hash_password
from dishub_monitor.models import Base
from dishub_monitor.models.user import User
from dishub_monitor.services.auth_seed import OPERATOR_ROLE, SUPER_ADMIN_ROLE, VIEWER_ROLE, seed_default_roles


@pytest.fixture
def db():
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def roles(db):
    return seed_default_roles(db)


def _make_user(db, roles, role_name: str, username: str) -> User:
    user = User(
        username=username,
        email=f"{username}@dishub.go.id",
        name=username.title(),
        password_hash=hash_password("secret123"),
        role_id=roles[role_name].id,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin(db, roles):
    return _make_user(db, roles, SUPER_ADMIN_ROLE, "admin")


@pytest.fixture
def operator(db, roles):
    return _make_user(db, roles, OPERATOR_ROLE, "operator")


@pytest.fixture
def viewer(db, roles):
    return _make_user(db, roles, VIEWER_ROLE, "viewer")
