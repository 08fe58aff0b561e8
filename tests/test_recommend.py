"""
Tests for the /recommend blurb endpoint
"""
import pytest
import requests

from cinetrack.client import CineTrackAPI, ClientSession
from cinetrack.services import recommendation_service
from cinetrack.services.recommendation_service import (
    EMPTY_ANSWER_BLURB,
    FALLBACK_BLURB,
    RecommendationService,
)
from cinetrack.services.watchlist_service import WatchlistService
from conftest import detail_document, make_token


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload or {}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error", response=self)

    def json(self):
        return self._payload


class RecordingPost(list):
    """requests.post replacement that records each call"""

    def __init__(self, response):
        super().__init__()
        self.response = response

    def __call__(self, url, json=None, headers=None, timeout=None):
        self.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def _completion(text):
    return FakeResponse(payload={"choices": [{"message": {"role": "assistant", "content": text}}]})


@pytest.fixture
def openai(monkeypatch):
    monkeypatch.setattr(RecommendationService, "API_KEY", "sk-test")
    recorder = RecordingPost(_completion("You will love the sandworms. Grab popcorn!"))
    monkeypatch.setattr(recommendation_service.requests, "post", recorder)
    return recorder


def _recommend(client, headers, user_id, tmdb_id):
    return client.post("/recommend", json={"tmdb_id": tmdb_id, "user_id": user_id}, headers=headers)


class TestRecommend:

    def test_blurb_uses_movie_and_recent_watchlist(self, client, openai, auth_headers, user_id, db_session, cached_movie):
        cached_movie(438631, document=detail_document(438631, "Dune"))
        cached_movie(603, document=detail_document(603, "The Matrix"))
        WatchlistService.upsert_entry(db_session, user_id, 603)

        response = _recommend(client, auth_headers, user_id, 438631)

        assert response.status_code == 200
        assert response.json() == {"recommendation": "You will love the sandworms. Grab popcorn!"}
        call = openai[0]
        assert call["url"] == "https://api.openai.com/v1/chat/completions"
        assert call["headers"]["Authorization"] == "Bearer sk-test"
        prompt = call["json"]["messages"][1]["content"]
        assert '"Dune"' in prompt
        assert "[The Matrix]" in prompt

    def test_only_five_most_recent_titles_are_used(self, client, openai, auth_headers, user_id, db_session, cached_movie):
        cached_movie(438631, document=detail_document(438631, "Dune"))
        for tmdb_id in range(1, 8):
            cached_movie(tmdb_id, document=detail_document(tmdb_id, f"Title {tmdb_id}"))
            WatchlistService.upsert_entry(db_session, user_id, tmdb_id)

        _recommend(client, auth_headers, user_id, 438631)

        prompt = openai[0]["json"]["messages"][1]["content"]
        assert sum(f"Title {i}" in prompt for i in range(1, 8)) == 5

    def test_missing_ids_is_400(self, client, openai, auth_headers, user_id):
        response = client.post("/recommend", json={"user_id": user_id}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing tmdb_id or user_id"}
        assert openai == []

    def test_uncached_movie_is_404(self, client, openai, auth_headers, user_id):
        response = _recommend(client, auth_headers, user_id, 438631)

        assert response.status_code == 404
        assert response.json() == {"error": "Movie not found"}
        assert openai == []

    def test_other_users_id_is_forbidden(self, client, openai, auth_headers, cached_movie):
        cached_movie(438631)

        assert _recommend(client, auth_headers, "someone-else", 438631).status_code == 403

    def test_requires_auth(self, client, openai, user_id):
        assert _recommend(client, {}, user_id, 438631).status_code == 401

    def test_llm_error_falls_back(self, client, openai, auth_headers, user_id, cached_movie):
        cached_movie(438631)
        openai.response = FakeResponse(status_code=429)

        response = _recommend(client, auth_headers, user_id, 438631)

        assert response.status_code == 200
        assert response.json() == {"recommendation": FALLBACK_BLURB}

    def test_llm_unreachable_falls_back(self, client, openai, auth_headers, user_id, cached_movie):
        cached_movie(438631)
        openai.response = requests.exceptions.ConnectionError("connection refused")

        assert _recommend(client, auth_headers, user_id, 438631).json() == {"recommendation": FALLBACK_BLURB}

    def test_missing_api_key_falls_back_without_calling(self, client, openai, auth_headers, user_id, cached_movie, monkeypatch):
        cached_movie(438631)
        monkeypatch.setattr(RecommendationService, "API_KEY", None)

        assert _recommend(client, auth_headers, user_id, 438631).json() == {"recommendation": FALLBACK_BLURB}
        assert openai == []

    def test_empty_answer_uses_default_blurb(self, client, openai, auth_headers, user_id, cached_movie):
        cached_movie(438631)
        openai.response = FakeResponse(payload={"choices": []})

        assert _recommend(client, auth_headers, user_id, 438631).json() == {"recommendation": EMPTY_ANSWER_BLURB}


def test_client_fetches_recommendation(client, openai, user_id, cached_movie):
    cached_movie(438631)
    api = CineTrackAPI(http=client, timeout=None)
    session = ClientSession(user_id=user_id, access_token=make_token(user_id))

    assert api.recommendation(session, 438631) == "You will love the sandworms. Grab popcorn!"
