"""Pytest fixtures for the blog pipeline tests."""
import os

# Configure before anything imports app.config / app.database / main
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id")
os.environ.setdefault("GOOGLE_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("GOOGLE_REDIRECT_URI", "https://blog.example.com/oauth2callback")
os.environ.setdefault("GOOGLE_DRIVE_FOLDER_ID", "folder-1")
os.environ["WATCH_RENEWAL_ENABLED"] = "false"

from datetime import datetime, timezone, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_context_factory
from app.config import Settings, get_settings
from app.database import Base, get_db, get_session_factory
from app.errors import NotFound
from app.services.cursor_store import DatabaseCursorStore
from app.services.drive_service import ChangeBatch, ChangeEvent, Subscription, DOC_MIME_TYPE
from app.services.sync_service import SyncContext

FOLDER_ID = "folder-1"


# --- Fake Drive change source -------------------------------------------------

class FakeChangeSource:
    """In-memory stand-in for DriveChangeSource."""

    def __init__(self):
        self.start_cursors = iter(f"start-{n}" for n in range(1, 1000))
        self.batches = []          # ChangeBatch or Exception, consumed per list_changes call
        self.documents = {}        # file_id -> raw html, or Exception to raise
        self.subscriptions = []
        self.listed_since = []
        self.exported = []

    def issue_start_cursor(self) -> str:
        return next(self.start_cursors)

    def register_subscription(self, cursor: str, address: str) -> Subscription:
        subscription = Subscription(
            channel_id=f"blog-channel-{len(self.subscriptions) + 1}",
            resource_id="resource-1",
            expiry=datetime.now(timezone.utc) + timedelta(days=1),
            address=address,
        )
        self.subscriptions.append((cursor, subscription))
        return subscription

    def list_changes(self, since: str) -> ChangeBatch:
        self.listed_since.append(since)
        outcome = self.batches.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def export_document(self, file_id: str) -> str:
        self.exported.append(file_id)
        content = self.documents.get(file_id)
        if content is None:
            raise NotFound(f"Export document {file_id} failed: HTTP 404")
        if isinstance(content, Exception):
            raise content
        return content


def doc_event(file_id: str, name: str, parents=(FOLDER_ID,), mime_type=DOC_MIME_TYPE) -> ChangeEvent:
    return ChangeEvent(file_id=file_id, name=name, mime_type=mime_type, parents=list(parents))


# --- Database -------------------------------------------------------------------

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
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# --- Pipeline -------------------------------------------------------------------

@pytest.fixture
def settings() -> Settings:
    return Settings(
        google_client_id="test-client-id",
        google_client_secret="test-client-secret",
        google_redirect_uri="https://blog.example.com/oauth2callback",
        drive_folder_id=FOLDER_ID,
        webhook_url="https://blog.example.com/webhook",
        cursor_backend="database",
        renewal_enabled=False,
    )


@pytest.fixture
def fake_source() -> FakeChangeSource:
    return FakeChangeSource()


@pytest.fixture
def context_factory(fake_source):
    """Builds SyncContexts around the fake source and the database cursor store."""
    def _factory(db, settings):
        return SyncContext(db=db, settings=settings, source=fake_source, cursors=DatabaseCursorStore(db))
    return _factory


@pytest.fixture
def ctx(db, settings, context_factory) -> SyncContext:
    return context_factory(db, settings)


# --- HTTP -------------------------------------------------------------------------

@pytest.fixture
def client(session_factory, settings, context_factory):
    from main import app

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_context_factory] = lambda: context_factory

    yield TestClient(app)

    app.dependency_overrides.clear()
