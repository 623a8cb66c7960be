# tests/conftest.py
from __future__ import annotations

from collections.abc import Callable, Generator, Iterator
from datetime import datetime, timedelta
from itertools import count

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from loop_stage.core.security import create_access_token
from loop_stage.db.session import Base
from loop_stage.db.session import get_db as app_get_session
from loop_stage.db.time import utcnow
from loop_stage.main import app as fastapi_app
from loop_stage.models import Loop, LoopMember, Post, Reply, User

TEST_DB_URL = "sqlite://"

_USER_COUNTER = count(1)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite defers BEGIN on its own; emit it explicitly so SAVEPOINTs nest.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, _record) -> None:
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
    """Session whose commits and rollbacks act on savepoints of one outer transaction."""
    connection = engine.connect()
    transaction = connection.begin()
    session = Session(
        bind=connection,
        join_transaction_mode="create_savepoint",
        autoflush=False,
        expire_on_commit=False,
    )
    try:
        yield session
    finally:
        session.close()
        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits escaped.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def now() -> datetime:
    """A fixed wall-clock instant for score computations."""
    return utcnow().replace(microsecond=0)


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Return a factory that persists user profiles."""

    def _make_user(
        username: str | None = None,
        display_name: str | None = None,
        user_id: str | None = None,
    ) -> User:
        serial = next(_USER_COUNTER)
        user = User(
            user_id=user_id or f"uid-{serial}",
            username=username,
            display_name=display_name,
            aura_total=0,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture()
def test_user(make_user: Callable[..., User]) -> User:
    """Create and return the primary test user."""
    return make_user(username="alice", display_name="Alice")


@pytest.fixture()
def other_user(make_user: Callable[..., User]) -> User:
    """Create and return a second persisted user."""
    return make_user(username="bob", display_name="Bob")


@pytest.fixture()
def auth_token(test_user: User) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    token = create_access_token(test_user.user_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def other_auth_token(other_user: User) -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    token = create_access_token(other_user.user_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def test_loop(db_session: Session, test_user: User) -> Loop:
    """Create a loop the primary test user has joined."""
    loop = Loop(name="general", description_md="General chatter", members_count=1)
    db_session.add(loop)
    db_session.flush()
    db_session.add(LoopMember(loop_id=loop.id, user_id=test_user.user_id))
    db_session.commit()
    return loop


@pytest.fixture()
def make_post(db_session: Session) -> Callable[..., Post]:
    """Return a factory that persists posts with explicit creation times."""

    def _make_post(
        loop: Loop,
        poster: User,
        content: str = "Test post content",
        created_at: datetime | None = None,
        score: float = 0.0,
    ) -> Post:
        post = Post(
            loop_id=loop.id,
            poster_id=poster.user_id,
            content=content,
            created_at=created_at or utcnow(),
            upvotes=0,
            downvotes=0,
            score=score,
        )
        db_session.add(post)
        db_session.commit()
        return post

    return _make_post


@pytest.fixture()
def test_post(make_post: Callable[..., Post], test_loop: Loop, test_user: User, now: datetime) -> Post:
    """Create a baseline post one hour old, authored by the primary user."""
    return make_post(test_loop, test_user, created_at=now - timedelta(hours=1))


@pytest.fixture()
def make_reply(db_session: Session) -> Callable[..., Reply]:
    """Return a factory that persists replies with explicit ids and parents."""
    base_time = utcnow() - timedelta(days=1)
    order = count()

    def _make_reply(
        post: Post,
        replier: User,
        reply_id: str | None = None,
        parent_id: str | None = None,
        content: str = "Test reply",
        created_at: datetime | None = None,
    ) -> Reply:
        reply = Reply(
            post_id=post.id,
            replier_id=replier.user_id,
            content=content,
            parent_id=parent_id,
            created_at=created_at or base_time + timedelta(minutes=next(order)),
            upvotes=0,
            downvotes=0,
        )
        if reply_id is not None:
            reply.id = reply_id
        db_session.add(reply)
        db_session.commit()
        return reply

    return _make_reply
