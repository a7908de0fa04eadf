import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.auth import get_current_user
from storefront.db import Base, get_db
from storefront.main import app
from storefront.tests.factories import make_user, seed_catalog


@pytest.fixture(autouse=True)
def override_auth(request):
    if request.node.get_closest_marker("real_auth"):
        yield
        return

    app.dependency_overrides[get_current_user] = lambda: make_user(user_id=1, role="ADMIN")
    yield
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(engine)
    yield TestingSessionLocal
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    with session_factory() as session:
        seed_catalog(session)
        session.commit()
        yield session


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with session_factory() as db:
        seed_catalog(db)
        db.commit()

    with TestClient(app) as test_client:
        yield test_client, session_factory

    app.dependency_overrides.pop(get_db, None)


@pytest.fixture()
def act_as():
    """Switch the authenticated user for the rest of the test."""

    def _act_as(user_id: int, role: str):
        app.dependency_overrides[get_current_user] = lambda: make_user(user_id=user_id, role=role)

    return _act_as
