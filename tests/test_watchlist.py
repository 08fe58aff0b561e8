"""
Tests for the watchlist store and the /watchlist-rpc sync protocol
"""
from datetime import datetime, timedelta, timezone

import pytest

from cinetrack.models.watchlist import WatchlistEntry
from cinetrack.schemas.watchlist import WatchlistCategory
from cinetrack.services.watchlist_service import WatchlistService
from cinetrack.utils.exceptions import NotCachedError, NotFoundError
from conftest import detail_document, make_token


def _rpc(client, headers, user_id, tmdb_id, category=None, rating=None):
    body = {"user_id": user_id, "tmdb_id": tmdb_id, "rating": rating}
    if category is not None:
        body["category"] = category
    return client.post("/watchlist-rpc", json=body, headers=headers)


# ============================================
# Service
# ============================================

class TestWatchlistService:

    def test_not_cached_movie_is_rejected(self, db_session, user_id):
        with pytest.raises(NotCachedError) as exc:
            WatchlistService.upsert_entry(db_session, user_id, 438631)

        assert exc.value.status_code == 404
        assert exc.value.detail == "Movie not cached"

    def test_upsert_is_idempotent(self, db_session, cached_movie, user_id):
        cached_movie(438631)

        first, created_first = WatchlistService.upsert_entry(db_session, user_id, 438631, WatchlistCategory.WATCHING, 4)
        second, created_second = WatchlistService.upsert_entry(db_session, user_id, 438631, WatchlistCategory.WATCHING, 4)

        assert created_first is True
        assert created_second is False
        assert first.id == second.id
        assert db_session.query(WatchlistEntry).count() == 1

    def test_category_is_overwritten_in_any_direction(self, db_session, cached_movie, user_id):
        cached_movie(438631)
        WatchlistService.upsert_entry(db_session, user_id, 438631, WatchlistCategory.WATCHED)

        entry, _ = WatchlistService.upsert_entry(db_session, user_id, 438631, WatchlistCategory.WANT_TO_WATCH)

        assert entry.category == "want-to-watch"

    def test_lost_insert_race_becomes_update(self, db_session, cached_movie, user_id, monkeypatch):
        movie = cached_movie(438631)
        db_session.add(WatchlistEntry(user_id=user_id, movie_id=movie.id, category="want-to-watch"))
        db_session.commit()

        original_find = WatchlistService._find_entry
        lookups = {"count": 0}

        def racing_find(db, uid, movie_id):
            # First lookup runs before the competing insert is visible
            lookups["count"] += 1
            if lookups["count"] == 1:
                return None
            return original_find(db, uid, movie_id)

        monkeypatch.setattr(WatchlistService, "_find_entry", staticmethod(racing_find))

        entry, created = WatchlistService.upsert_entry(db_session, user_id, 438631, WatchlistCategory.WATCHING, 5)

        assert created is False
        assert entry.category == "watching"
        assert entry.user_rating == 5
        assert db_session.query(WatchlistEntry).count() == 1

    def test_entries_are_per_user(self, db_session, cached_movie, user_id):
        cached_movie(438631)
        WatchlistService.upsert_entry(db_session, user_id, 438631)
        WatchlistService.upsert_entry(db_session, "someone-else", 438631)

        assert len(WatchlistService.list_entries(db_session, user_id)) == 1
        assert db_session.query(WatchlistEntry).count() == 2

    def test_list_is_most_recently_changed_first(self, db_session, cached_movie, user_id):
        for tmdb_id in (1, 2, 3):
            cached_movie(tmdb_id)
            entry, _ = WatchlistService.upsert_entry(db_session, user_id, tmdb_id)
            entry.updated_at = datetime(2026, 1, tmdb_id, tzinfo=timezone.utc)
        db_session.commit()

        WatchlistService.set_rating(db_session, user_id, 1, 3)

        assert [e.tmdb_id for e in WatchlistService.list_entries(db_session, user_id)] == [1, 3, 2]

    def test_remove_missing_entry(self, db_session, cached_movie, user_id):
        with pytest.raises(NotFoundError, match="Movie not found"):
            WatchlistService.remove_entry(db_session, user_id, 438631)

        cached_movie(438631)
        with pytest.raises(NotFoundError, match="Watchlist entry not found"):
            WatchlistService.remove_entry(db_session, user_id, 438631)

    def test_get_entry(self, db_session, cached_movie, user_id):
        assert WatchlistService.get_entry(db_session, user_id, 438631) is None

        cached_movie(438631)
        WatchlistService.upsert_entry(db_session, user_id, 438631)

        assert WatchlistService.get_entry(db_session, user_id, 438631).tmdb_id == 438631


# ============================================
# RPC endpoint
# ============================================

class TestWatchlistRPC:

    def test_requires_bearer_token(self, client, user_id):
        response = _rpc(client, {}, user_id, 438631)

        assert response.status_code == 401
        assert "error" in response.json()

    def test_rejects_invalid_token(self, client, user_id):
        response = _rpc(client, {"Authorization": "Bearer not-a-jwt"}, user_id, 438631)

        assert response.status_code == 401

    def test_rejects_expired_token(self, client, user_id):
        headers = {"Authorization": f"Bearer {make_token(user_id, timedelta(hours=-1))}"}

        assert _rpc(client, headers, user_id, 438631).status_code == 401

    def test_missing_ids_is_400(self, client, auth_headers, user_id):
        response = _rpc(client, auth_headers, None, 438631)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing user_id or tmdb_id"}

        response = _rpc(client, auth_headers, user_id, None)
        assert response.status_code == 400

    def test_other_users_id_is_forbidden(self, client, auth_headers, cached_movie):
        cached_movie(438631)

        response = _rpc(client, auth_headers, "someone-else", 438631)

        assert response.status_code == 403
        assert "error" in response.json()

    def test_invalid_category_is_400(self, client, auth_headers, user_id):
        response = _rpc(client, auth_headers, user_id, 438631, category="abandoned")

        assert response.status_code == 400

    def test_rating_out_of_range_is_400(self, client, auth_headers, user_id):
        response = _rpc(client, auth_headers, user_id, 438631, rating=6)

        assert response.status_code == 400

    def test_not_cached_then_fetch_then_created(self, client, tmdb, auth_headers, user_id):
        tmdb.routes["/movie/438631"] = detail_document(438631, "Dune")

        response = _rpc(client, auth_headers, user_id, 438631)
        assert response.status_code == 404
        assert response.json() == {"error": "Movie not cached"}

        assert client.get("/movies", params={"id": 438631}).status_code == 200

        response = _rpc(client, auth_headers, user_id, 438631)
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["created"] is True
        assert body["data"]["tmdb_id"] == 438631
        assert body["data"]["category"] == "want-to-watch"

    def test_null_category_means_want_to_watch(self, client, auth_headers, user_id, cached_movie):
        cached_movie(438631)

        response = client.post(
            "/watchlist-rpc",
            json={"user_id": user_id, "tmdb_id": 438631, "category": None, "rating": None},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["category"] == "want-to-watch"

    def test_second_call_reports_updated(self, client, auth_headers, user_id, cached_movie):
        cached_movie(438631)

        _rpc(client, auth_headers, user_id, 438631)
        response = _rpc(client, auth_headers, user_id, 438631, category="watching", rating=4)

        body = response.json()
        assert body["updated"] is True
        assert "created" not in body
        assert body["data"]["category"] == "watching"
        assert body["data"]["user_rating"] == 4


# ============================================
# Store endpoints
# ============================================

class TestWatchlistStore:

    def test_list_includes_movie(self, client, auth_headers, user_id, cached_movie):
        cached_movie(438631, document=detail_document(438631, "Dune"))
        _rpc(client, auth_headers, user_id, 438631)

        response = client.get("/watchlist", headers=auth_headers)

        assert response.status_code == 200
        results = response.json()["results"]
        assert len(results) == 1
        assert results[0]["movie"]["title"] == "Dune"

    def test_list_requires_auth(self, client):
        assert client.get("/watchlist").status_code == 401

    def test_remove(self, client, auth_headers, user_id, cached_movie):
        cached_movie(438631)
        _rpc(client, auth_headers, user_id, 438631)

        response = client.delete("/watchlist/438631", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert client.get("/watchlist", headers=auth_headers).json()["results"] == []

    def test_remove_missing_is_404(self, client, auth_headers, cached_movie):
        cached_movie(438631)

        response = client.delete("/watchlist/438631", headers=auth_headers)

        assert response.status_code == 404
        assert response.json() == {"error": "Watchlist entry not found"}

    def test_set_rating_keeps_category(self, client, auth_headers, user_id, cached_movie):
        cached_movie(438631)
        _rpc(client, auth_headers, user_id, 438631, category="watched")

        response = client.patch("/watchlist/438631/rating", json={"rating": 5}, headers=auth_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["user_rating"] == 5
        assert data["category"] == "watched"

    def test_set_rating_validates_range(self, client, auth_headers, user_id, cached_movie):
        cached_movie(438631)
        _rpc(client, auth_headers, user_id, 438631)

        response = client.patch("/watchlist/438631/rating", json={"rating": 0}, headers=auth_headers)

        assert response.status_code == 400
