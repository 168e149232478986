import os

import pytest
from bookledger.core.security import create_access_token
from bookledger.db.session import build_engine, build_session_factory, get_db
from bookledger.main import app
from bookledger.models import Base, Book, User
from fastapi.testclient import TestClient


@pytest.fixture(autouse=True)
def no_redis(monkeypatch):
    # Cache and rate limiter fail open; tests that need Redis patch in a fake.
    monkeypatch.setattr("bookledger.services.catalog_cache.get_redis", lambda: None)
    monkeypatch.setattr("bookledger.api.rate_limit.get_redis", lambda: None)


@pytest.fixture()
def engine(tmp_path):
    # Override at runtime: TEST_DATABASE_URL=postgresql+psycopg2://... pytest
    url = os.getenv("TEST_DATABASE_URL")
    if url:
        eng = build_engine(url)
    else:
        # File-backed so every session gets its own connection, as in production.
        eng = build_engine(f"sqlite+pysqlite:///{tmp_path / 'test.db'}")

    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db_session):
    counter = {"n": 0}

    def _make(role: str = "user", **kwargs) -> User:
        counter["n"] += 1
        u = User(
            email=kwargs.pop("email", f"{role}{counter['n']}@example.com"),
            password_hash=kwargs.pop("password_hash", "x"),
            role=role,
            **kwargs,
        )
        db_session.add(u)
        db_session.commit()
        db_session.refresh(u)
        return u

    return _make


@pytest.fixture()
def make_book(db_session):
    def _make(copies: int = 1, available: int | None = None, title: str = "Dune") -> Book:
        b = Book(
            title=title,
            author="Frank Herbert",
            total_copies=copies,
            available_copies=copies if available is None else available,
        )
        db_session.add(b)
        db_session.commit()
        db_session.refresh(b)
        return b

    return _make


@pytest.fixture()
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        token = create_access_token(subject=user.id, role=user.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers
