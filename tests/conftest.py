import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from moviecritic.database import Base, get_db, enable_sqlite_foreign_keys
from moviecritic.main import app
from moviecritic.models import Movie, Review  # noqa: F401  registers tables
from moviecritic.client.api import MovieCriticAPI

SQLALCHEMY_DATABASE_URL = "sqlite://"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def _fk_on(dbapi_conn, connection_record):
    enable_sqlite_foreign_keys(dbapi_conn)


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session():
    """Provide a clean database session for each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_session):
    """FastAPI test client with the database dependency overridden."""

    def override_get_db():
        test_db = TestingSessionLocal()
        try:
            yield test_db
        finally:
            test_db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def api(client):
    """Client library wired to the in-process app instead of the network."""
    return MovieCriticAPI(base_url="http://testserver", session=client)


@pytest.fixture
def create_movie(client):
    def _create(name="Dune", release_date="2021-10-22"):
        response = client.post("/movies", json={"name": name, "release_date": release_date})
        assert response.status_code == 201, response.text
        return response.json()["movie"]

    return _create


@pytest.fixture
def create_review(client):
    def _create(movie_id, rating, review_comments="Good", reviewer_name=None):
        payload = {"movie_id": movie_id, "rating": rating, "review_comments": review_comments}
        if reviewer_name is not None:
            payload["reviewer_name"] = reviewer_name
        response = client.post("/reviews", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _create
