import os
import tempfile
import pytest
from fastapi.testclient import TestClient

# Ensure tests always use SQLite to avoid requiring Postgres drivers
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_labourhub.db")

from labourhub import models
from labourhub.database import Base, get_db, make_engine, make_sessionmaker
from labourhub.main import app


@pytest.fixture(scope="session")
def test_db_url():
    # Use a temporary SQLite file to persist across tests within a session
    db_fd, db_path = tempfile.mkstemp(prefix="test_labourhub_", suffix=".db")
    os.close(db_fd)
    url = f"sqlite:///{db_path}"
    yield url
    try:
        os.remove(db_path)
    except FileNotFoundError:
        pass


@pytest.fixture()
def db_session(test_db_url):
    engine = make_engine(test_db_url)
    TestingSessionLocal = make_sessionmaker(engine)
    # Create all tables
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
    # Ensure file handles are released on Windows
    engine.dispose()


@pytest.fixture()
def client(db_session):
    # Override the dependency to use the test session
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db_session):
    counter = {"n": 0}

    def _make(role="client", name=None, **profile):
        counter["n"] += 1
        n = counter["n"]
        user = models.User(
            name=name or f"{role.title()} {n}",
            email=f"{role}{n}@example.com",
            role=role,
            **profile,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture()
def client_user(make_user):
    return make_user("client", name="Cara Client")


@pytest.fixture()
def labour_user(make_user):
    return make_user("labour", name="Lee Labour")
