# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("FEED_WATCHED_TAGS", "[]")

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tagforum.api.v1.dependencies import get_atproto_client
from tagforum.db.session import Base
from tagforum.db.session import get_db as app_get_session
from tagforum.main import app as fastapi_app
from tagforum.schemas.post import Post, ReplyRef, ThreadNode
from tagforum.services.atproto import AtprotoClient

TEST_DB_URL = "sqlite://"
TEST_TAG = "test"
BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


def at(seconds: float) -> datetime:
    """Return BASE_TIME shifted by ``seconds``."""
    return BASE_TIME + timedelta(seconds=seconds)


def make_post(
    uri: str,
    indexed_at: datetime | float = 0,
    *,
    text: str = f"test post #{TEST_TAG}",
    parent: str | None = None,
    root: str | None = None,
    author: str = "did:plc:author",
    like_count: int | None = None,
    created_at: datetime | float | None = None,
) -> Post:
    """Build a Post; ``parent`` makes it a reply (root defaults to parent)."""
    if not isinstance(indexed_at, datetime):
        indexed_at = at(indexed_at)
    if created_at is not None and not isinstance(created_at, datetime):
        created_at = at(created_at)
    reply_ref = None
    if parent is not None or root is not None:
        reply_ref = ReplyRef(root_uri=root or parent, parent_uri=parent)
    return Post(
        uri=uri,
        author_did=author,
        text=text,
        indexed_at=indexed_at,
        created_at=created_at or indexed_at,
        like_count=like_count,
        reply_ref=reply_ref,
    )


def make_node(post: Post, replies: list[ThreadNode] | None = None) -> ThreadNode:
    return ThreadNode(post=post, replies=replies)


def post_view(
    uri: str,
    indexed_at: str = "2024-01-01T00:00:00.000Z",
    *,
    text: str = f"hello #{TEST_TAG}",
    reply: dict | None = None,
    did: str = "did:plc:author",
    like_count: int | None = None,
) -> dict:
    """Raw ``postView`` JSON as returned by the upstream API."""
    record: dict = {
        "$type": "app.bsky.feed.post",
        "text": text,
        "createdAt": indexed_at,
    }
    if reply is not None:
        record["reply"] = reply
    view: dict = {
        "uri": uri,
        "cid": f"cid-{uri.rsplit('/', 1)[-1]}",
        "author": {"did": did, "handle": "author.test"},
        "record": record,
        "indexedAt": indexed_at,
    }
    if like_count is not None:
        view["likeCount"] = like_count
    return view


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def mock_atproto_client() -> AsyncMock:
    return AsyncMock(spec=AtprotoClient)


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI, db_session: Session, mock_atproto_client: AsyncMock
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_atproto_client] = lambda: mock_atproto_client
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_atproto_client, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def owner_headers() -> dict[str, str]:
    return {"X-Did": "did:plc:owner"}
