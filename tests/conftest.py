# tests/conftest.py
from __future__ import annotations

import os
import random
from collections.abc import Callable, Generator, Iterator

import pytest

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("TRUST_SWEEP_ENABLED", "false")

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from tests.fakes import FakeBackend, FakeConfirmation, FakeEmbeddings
from trustgate.core.security import create_access_token
from trustgate.db.session import Base
from trustgate.db.session import get_db as app_get_session
from trustgate.main import app as fastapi_app
from trustgate.models import (
    ContentEmbedding,
    ContentItem,
    ContentVersion,
    ModerationDecision,
    User,
)
from trustgate.models.content import CONTENT_STATUS_FLAGGED, CONTENT_STATUS_PUBLISHED
from trustgate.models.moderation import OUTCOME_BLOCK
from trustgate.services.classification import ClassificationGateway
from trustgate.services.content import ContentService
from trustgate.services.governance import Governance, build_governance, get_governance
from trustgate.services.originality import OriginalityChecker

TEST_DB_URL = "sqlite://"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Let SQLAlchemy manage BEGIN so SAVEPOINTs behave on pysqlite.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    """Session whose commits become SAVEPOINT releases inside a rolled-back transaction."""
    connection = engine.connect()
    transaction = connection.begin()
    session = Session(
        bind=connection,
        autoflush=False,
        join_transaction_mode="create_savepoint",
    )
    try:
        yield session
    finally:
        session.close()
        if transaction.is_active:
            transaction.rollback()
        connection.close()


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def embeddings() -> FakeEmbeddings:
    return FakeEmbeddings()


@pytest.fixture()
def confirmation() -> FakeConfirmation:
    return FakeConfirmation()


@pytest.fixture()
def governance(
    backend: FakeBackend, embeddings: FakeEmbeddings, confirmation: FakeConfirmation
) -> Governance:
    """Governance components wired to fake upstream services."""
    return build_governance(
        gateway=ClassificationGateway([backend]),
        checker=OriginalityChecker(embeddings, confirmation),
        rng=random.Random(1234),
    )


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI, db_session: Session, governance: Governance
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_governance] = lambda: governance
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_governance, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Factory persisting a user with the given role."""

    def _make_user(role: str = "member", display_name: str | None = None) -> User:
        user = User(role=role, display_name=display_name or f"{role}-user")
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def author(make_user: Callable[..., User]) -> User:
    return make_user("member", "author")


@pytest.fixture()
def member(make_user: Callable[..., User]) -> User:
    return make_user("member", "bystander")


@pytest.fixture()
def admin(make_user: Callable[..., User]) -> User:
    return make_user("admin", "admin")


@pytest.fixture()
def moderator(make_user: Callable[..., User]) -> User:
    return make_user("moderator", "moderator")


@pytest.fixture()
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Return authorization headers for a user."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers


@pytest.fixture()
def publish_content(db_session: Session) -> Callable[..., ContentItem]:
    """Persist published content with a stored fingerprint, bypassing moderation."""

    def _publish(
        author: User, body: str, vector: list[float], title: str | None = None
    ) -> ContentItem:
        item = ContentItem(author_id=author.id, status=CONTENT_STATUS_PUBLISHED)
        db_session.add(item)
        db_session.flush()
        version = ContentVersion(content_id=item.id, number=1, title=title, body=body)
        db_session.add(version)
        db_session.flush()
        item.current_version_id = version.id
        db_session.add(
            ContentEmbedding(
                content_id=item.id,
                version_id=version.id,
                vector=vector,
                embedded_text=body,
                model="fake-embedding",
            )
        )
        db_session.commit()
        db_session.refresh(item)
        return item

    return _publish


@pytest.fixture()
def flag_content(db_session: Session) -> Callable[..., ContentItem]:
    """Persist content that a moderation pass has blocked."""

    def _flag(author: User, body: str = "A post that was blocked by moderation.") -> ContentItem:
        item = ContentService.create(db_session, author, "Flagged post", body)
        item.status = CONTENT_STATUS_FLAGGED
        db_session.add(
            ModerationDecision(
                content_id=item.id,
                content_version_id=item.current_version_id,
                outcome=OUTCOME_BLOCK,
                classification_available=True,
                classification_backend="fake",
                flagged=True,
                flagged_categories=["harassment"],
                category_scores={"harassment": 0.95},
                originality_available=True,
                similarity_score=0.0,
                matched_source_ids=[],
                is_plagiarized=False,
                warnings=[],
            )
        )
        db_session.commit()
        db_session.refresh(item)
        return item

    return _flag
