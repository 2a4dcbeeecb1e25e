import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AI_EMERGENCY_DISABLE", "false")

from datetime import datetime, timezone  # noqa: E402
from unittest.mock import Mock  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import app.models  # noqa: E402,F401
from app.database import Base  # noqa: E402
from app.models import AIChannelQuota  # noqa: E402


@pytest.fixture
def mock_db():
    """Mock database session."""
    return Mock()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Real session on an in-memory SQLite database."""
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def whatsapp_quota(db_session):
    quota = AIChannelQuota(
        channel="whatsapp",
        period=datetime.now(timezone.utc).date(),
        max_allowed=10,
        used=0,
    )
    db_session.add(quota)
    db_session.flush()
    return quota


@pytest.fixture(autouse=True)
def _kill_switch_off(monkeypatch):
    monkeypatch.setenv("AI_EMERGENCY_DISABLE", "false")
