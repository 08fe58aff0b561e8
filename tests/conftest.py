import copy
import os
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure background jobs stay disabled during tests
os.environ.setdefault("ENABLE_BACKGROUND_JOBS", "false")

from cinetrack.database import Base, get_db
from cinetrack.main import app
from cinetrack.models.movie import Movie
from cinetrack.services.tmdb_service import TMDBService
from cinetrack.utils.cache import clear_all_cache
from cinetrack.utils.exceptions import UpstreamUnavailableError
from cinetrack.utils.security import SECRET_KEY, ALGORITHM

SQLALCHEMY_DATABASE_URL = "sqlite://"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeTMDB:
    """
    Stand-in for TMDBService._make_request.

    ``routes`` maps an endpoint to a response dict, a callable taking the
    params, or an exception instance to raise. Unknown endpoints answer 404.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []

    def __call__(self, endpoint, params=None):
        params = dict(params or {})
        self.calls.append((endpoint, params))
        if endpoint not in self.routes:
            raise UpstreamUnavailableError("TMDB API error: 404", 404)
        handler = self.routes[endpoint]
        if isinstance(handler, Exception):
            raise handler
        if callable(handler):
            return handler(params)
        return copy.deepcopy(handler)

    def calls_to(self, endpoint):
        return [params for called, params in self.calls if called == endpoint]


@pytest.fixture(autouse=True)
def _clear_upstream_cache():
    clear_all_cache()
    yield
    clear_all_cache()


@pytest.fixture
def tmdb(monkeypatch):
    fake = FakeTMDB()

    def fake_request(cls, endpoint, params=None):
        return fake(endpoint, params)

    monkeypatch.setattr(TMDBService, "_make_request", classmethod(fake_request))
    return fake


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
def client(db_session, monkeypatch):
    """FastAPI test client with the database dependency overridden."""

    def override_get_db():
        test_db = TestingSessionLocal()
        try:
            yield test_db
        finally:
            test_db.close()

    app.dependency_overrides[get_db] = override_get_db
    monkeypatch.setenv("ENABLE_BACKGROUND_JOBS", "false")

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.pop(get_db, None)


def make_token(user_id: str, expires_in: timedelta = timedelta(hours=1)) -> str:
    """Sign a token the way the external auth provider would"""
    payload = {"sub": user_id, "exp": datetime.now(timezone.utc) + expires_in}
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


@pytest.fixture
def user_id():
    return "0b7c9f5e-3d0a-4c1e-9a61-2f4f3c7d9e10"


@pytest.fixture
def auth_headers(user_id):
    return {"Authorization": f"Bearer {make_token(user_id)}"}


def movie_document(tmdb_id: int, title: str = None, **extra) -> dict:
    """Upstream-shaped movie summary"""
    document = {
        "id": tmdb_id,
        "title": title or f"Movie {tmdb_id}",
        "overview": f"Overview for movie {tmdb_id}",
        "poster_path": f"/poster{tmdb_id}.jpg",
        "backdrop_path": f"/backdrop{tmdb_id}.jpg",
        "release_date": "2021-09-15",
        "vote_average": 7.5,
        "vote_count": 1200,
        "popularity": 50.0,
        "genre_ids": [12, 878],
        "original_language": "en",
    }
    document.update(extra)
    return document


def detail_document(tmdb_id: int, title: str = None, **extra) -> dict:
    """Upstream-shaped /movie/{id} answer with appended credits"""
    document = movie_document(tmdb_id, title)
    document.pop("genre_ids")
    document.update({
        "genres": [{"id": 878, "name": "Science Fiction"}, {"id": 12, "name": "Adventure"}],
        "runtime": 155,
        "production_companies": [{"id": 923, "name": "Legendary Pictures", "logo_path": None, "origin_country": "US"}],
        "credits": {"cast": [], "crew": []},
        "videos": {"results": []},
        "release_dates": {"results": []},
    })
    document.update(extra)
    return document


@pytest.fixture
def cached_movie(db_session):
    """Factory that seeds the catalog cache directly"""

    def _create(tmdb_id: int, cached_at: datetime = None, document: dict = None) -> Movie:
        document = document or detail_document(tmdb_id)
        movie = Movie(
            tmdb_id=tmdb_id,
            title=document.get("title"),
            overview=document.get("overview"),
            vote_average=document.get("vote_average", 0.0),
            vote_count=document.get("vote_count", 0),
            genres=[],
            tmdb_json=document,
            cached_at=cached_at or datetime.now(timezone.utc),
        )
        db_session.add(movie)
        db_session.commit()
        db_session.refresh(movie)
        return movie

    return _create
