from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shorts_pipeline import config
from shorts_pipeline.database import Base
from shorts_pipeline.models import Job


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def _quiet_config(monkeypatch):
    monkeypatch.setattr(config, "DEBUG_MODE", False)
    monkeypatch.setattr(config, "JOB_RETRY_LIMIT", 0)
    monkeypatch.setattr(config, "CLEANUP_REMOTE_ASSETS", True)


@pytest.fixture
def make_job(db):
    """Insert a job directly at any stage/status. Jobs get increasing created_at."""
    base = datetime(2024, 1, 1, 12, 0, 0)
    counter = {"n": 0}

    def _make(**kw):
        counter["n"] += 1
        values = {
            "account_id": "acct-1",
            "persona": "english",
            "topic": "phrasal_verbs",
            "content_format": "multiple_choice",
            "stage": 1,
            "status": "pending",
            "data": {},
            "created_at": base + timedelta(minutes=counter["n"]),
        }
        values.update(kw)
        job = Job(**values)
        db.add(job)
        db.commit()
        return job

    return _make
