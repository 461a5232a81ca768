"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")

from vocab_srs.crud.memory_progress_crud import InMemoryProgressRepository
from vocab_srs.crud.progress_crud import SQLProgressRepository
from vocab_srs.db.base import Base, UserWordProgress, Vocabulary
from vocab_srs.services.srs_service import SRSService


TABLES = [
    Vocabulary.__table__,
    UserWordProgress.__table__,
]


@pytest.fixture()
def engine():
    engine = create_engine("sqlite:///:memory:", future=True)
    Base.metadata.create_all(bind=engine, tables=TABLES)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine, tables=TABLES)
        engine.dispose()


@pytest.fixture()
def db_session(engine) -> Session:
    SessionLocal = sessionmaker(bind=engine, future=True)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def sql_repository(db_session) -> SQLProgressRepository:
    return SQLProgressRepository(db_session)


@pytest.fixture()
def memory_repository() -> InMemoryProgressRepository:
    return InMemoryProgressRepository()


@pytest.fixture()
def sql_service(sql_repository) -> SRSService:
    return SRSService(sql_repository, default_limit=20, max_limit=100)


@pytest.fixture()
def memory_service(memory_repository) -> SRSService:
    return SRSService(memory_repository, default_limit=20, max_limit=100)


@pytest.fixture()
def failing_store(db_session, monkeypatch):
    """Make every ``Session.execute`` fail as a dropped connection would.

    Returns the list of rollbacks issued on the session.
    """

    rollbacks = []
    real_rollback = db_session.rollback

    def _rollback():
        rollbacks.append(True)
        real_rollback()

    def _execute(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("server closed the connection unexpectedly"))

    monkeypatch.setattr(db_session, "rollback", _rollback)
    monkeypatch.setattr(db_session, "execute", _execute)
    return rollbacks
