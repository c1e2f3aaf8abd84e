# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ.setdefault("CHAT_STORE_BACKEND", "memory")
os.environ.setdefault("CHAT_SEED_DEMO_DATA", "false")
os.environ.pop("REDIS_URL", None)

from campus_chat.core.security import create_access_token
from campus_chat.core.settings import Settings, settings
from campus_chat.db.session import Base
from campus_chat.main import app as fastapi_app
from campus_chat.repositories.memory import DEMO_USERS, MemoryMessageStore, MemoryUserDirectory
from campus_chat.repositories.message_repo import SqlMessageStore
from campus_chat.repositories.user_repo import SqlUserDirectory
from campus_chat.services.chat_store import MessageStore
from campus_chat.services.directory import UserDirectory
from campus_chat.services.factory import ChatRuntime, build_chat_runtime

TEST_DB_URL = "sqlite://"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> Iterator[sessionmaker[Session]]:
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    try:
        yield factory
    finally:
        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def sql_directory(session_factory: sessionmaker[Session]) -> SqlUserDirectory:
    directory = SqlUserDirectory(session_factory)
    for profile in DEMO_USERS:
        directory.add(profile)
    return directory


@pytest.fixture(params=["sql", "memory"])
def store_backend(request: pytest.FixtureRequest, session_factory: sessionmaker[Session]) -> tuple[MessageStore, UserDirectory]:
    """Yield a (store, directory) pair for each backend, loaded with the demo users."""
    if request.param == "sql":
        directory: UserDirectory = SqlUserDirectory(session_factory)
        for profile in DEMO_USERS:
            directory.add(profile)
        return SqlMessageStore(session_factory, directory, max_length=50), directory
    directory = MemoryUserDirectory(DEMO_USERS)
    return MemoryMessageStore(directory, max_length=50), directory


@pytest.fixture()
def memory_directory() -> MemoryUserDirectory:
    return MemoryUserDirectory(DEMO_USERS)


@pytest.fixture()
def memory_store(memory_directory: MemoryUserDirectory) -> MemoryMessageStore:
    return MemoryMessageStore(memory_directory)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Provide a Settings instance aligned with runtime configuration."""
    return settings


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


def _attach(app: FastAPI, runtime: ChatRuntime) -> Iterator[ChatRuntime]:
    app.state.runtime = runtime
    try:
        yield runtime
    finally:
        app.state.runtime = None


@pytest.fixture()
def runtime(
    app: FastAPI,
    test_settings: Settings,
    session_factory: sessionmaker[Session],
    sql_directory: SqlUserDirectory,
) -> Iterator[ChatRuntime]:
    """SQL-backed runtime attached to the app, with the demo users present."""
    config = test_settings.model_copy(update={"chat_store_backend": "sql", "redis_url": None})
    yield from _attach(app, build_chat_runtime(config, session_factory=session_factory))


@pytest.fixture()
def memory_runtime(app: FastAPI, test_settings: Settings) -> Iterator[ChatRuntime]:
    """In-memory runtime attached to the app, with the demo users but no messages."""
    config = test_settings.model_copy(
        update={"chat_store_backend": "memory", "chat_seed_demo_data": False, "redis_url": None}
    )
    built = build_chat_runtime(config)
    for profile in DEMO_USERS:
        built.directory.add(profile)  # type: ignore[attr-defined]
    yield from _attach(app, built)


@pytest.fixture()
def client(app: FastAPI, runtime: ChatRuntime) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def ws_client(app: FastAPI, memory_runtime: ChatRuntime) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def auth_headers() -> Callable[[int], dict[str, str]]:
    def _headers(user_id: int) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers


@pytest.fixture()
def token_for() -> Callable[[int], str]:
    return create_access_token
