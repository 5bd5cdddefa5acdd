"""Pytest fixtures — file-backed SQLite database, fresh for every test."""
from datetime import date, datetime
from typing import Optional

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from fastapi.testclient import TestClient

from calendar_copilot.database import Base, get_db, get_session_factory
from calendar_copilot.main import app
from calendar_copilot.services import event_service

# Import all models so they register with Base.metadata
from calendar_copilot.models.event import CalendarEvent  # noqa: F401

SQLITE_URL = "sqlite:///./test.db"


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    # WAL lets tool handlers in worker threads read while another writes
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory bound to the test engine (what tool handlers open sessions from)."""
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """Yield a database session for direct service calls."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    """FastAPI TestClient with the database dependencies overridden to use SQLite."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers: create events directly through the service layer
# ---------------------------------------------------------------------------
def create_timed_event(db: Session, summary: str, start: datetime, end: datetime, **kwargs) -> CalendarEvent:
    """Helper — timed event from aware datetimes."""
    return event_service.create_event(db, summary=summary, start_time=start, end_time=end, **kwargs)


def create_all_day_event(db: Session, summary: str, start: date, end: Optional[date] = None) -> CalendarEvent:
    """Helper — all-day event; ``end`` is exclusive and defaults to the next day."""
    return event_service.create_event(db, summary=summary, start_date=start, end_date=end)
