import os

os.environ.setdefault("ENV", "test")

from contextlib import contextmanager  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import app.models  # noqa: E402,F401
from app.db import Base  # noqa: E402

pytest_plugins = [
    "tests.fixtures.identity_fixtures",
    "tests.fixtures.llm_fixtures",
]


def _test_database_url() -> str:
    """SQLite in memory unless TEST_DATABASE_URL points at a real database."""
    return os.getenv("TEST_DATABASE_URL") or "sqlite://"


@pytest.fixture(scope="session")
def engine():
    url = _test_database_url()
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(url)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_local(engine):
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    yield factory
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def db(session_local):
    session = session_local()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def session_factory(session_local):
    """Factory of independent sessions, like db_manager.db_session."""

    @contextmanager
    def factory():
        session = session_local()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return factory


@pytest.fixture(scope="function")
def client(db, session_factory, fake_runner):
    """TestClient with DB, session factory and summarization runner overridden."""
    from fastapi.testclient import TestClient

    from app.db import get_db, get_session_factory
    from app.main import create_app
    from app.routers.utils.dependencies import get_summary_runner

    app = create_app(testing=True)

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_summary_runner] = lambda: fake_runner
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
