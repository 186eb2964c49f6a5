"""
Tests for the TMDb proxy endpoints, the client helpers and recommendations.
"""
import pytest

from watchwise.blueprints import recommendations
from watchwise.utils import tmdb


# ── Pure helpers ──────────────────────────────────────────────────────────────

class TestHelpers:

    def test_poster_url(self):
        assert tmdb.poster_url("/p.jpg") == "https://image.tmdb.org/t/p/w500/p.jpg"
        assert tmdb.poster_url("/p.jpg", size="w185") == "https://image.tmdb.org/t/p/w185/p.jpg"
        assert tmdb.poster_url(None) is None

    def test_release_year(self):
        assert tmdb.release_year({"release_date": "1999-03-30"}) == 1999
        assert tmdb.release_year({"first_air_date": "2008-01-20"}) == 2008
        assert tmdb.release_year({"release_date": ""}) is None

    def test_normalize_title_from_details(self):
        data = tmdb.normalize_title({"id": 1396, "name": "Breaking Bad", "genres": [{"id": 18}]}, "tv")
        assert data["title"] == "Breaking Bad"
        assert data["media_type"] == "tv"
        assert data["genres"] == [18]

    def test_provider_names_prefers_streaming(self):
        providers = {"results": {"US": {
            "flatrate": [{"provider_name": n} for n in ("A", "B", "C", "D")],
            "buy": [{"provider_name": "Store"}],
        }}}
        assert tmdb.provider_names(providers) == ["A", "B", "C"]

    def test_provider_names_falls_back(self):
        providers = {"results": {"GB": {"rent": [{"provider_name": "Rent Co"}]}}}
        assert tmdb.provider_names(providers, "GB") == ["Rent Co"]
        assert tmdb.provider_names(providers, "US") == []
        assert tmdb.provider_names(None) == []


class TestCredentials:

    def test_missing_credentials_raise(self, app, monkeypatch):
        monkeypatch.undo()  # restore the real _get
        app.config.update(TMDB_READ_TOKEN=None, TMDB_API_KEY=None)
        with app.app_context():
            assert tmdb.has_credentials() is False
            with pytest.raises(tmdb.TMDbError):
                tmdb.search_multi("heat")


# ── List endpoints degrade to empty ───────────────────────────────────────────

class TestListEndpoints:

    def test_search(self, client, fake_tmdb):
        body = client.get("/api/tmdb/search?query=matrix").get_json()
        assert [r["id"] for r in body["results"]] == [603, 604, 6384]
        assert ("search", "matrix") in fake_tmdb

    def test_empty_query_skips_upstream(self, client, fake_tmdb):
        assert client.get("/api/tmdb/search?query=%20").get_json() == {"results": []}
        assert fake_tmdb == []

    @pytest.mark.parametrize("url", ["/api/tmdb/search?query=heat", "/api/tmdb/trending", "/api/tmdb/popular"])
    def test_outage_is_empty_200(self, client, url):
        resp = client.get(url)
        assert resp.status_code == 200
        assert resp.get_json() == {"results": []}

    def test_trending_is_daily_all(self, client, fake_tmdb):
        client.get("/api/tmdb/trending")
        assert ("trending", "all", "day") in fake_tmdb

    def test_popular(self, client, fake_tmdb):
        assert len(client.get("/api/tmdb/popular").get_json()["results"]) == 1


# ── Single-title endpoints ────────────────────────────────────────────────────

class TestTitleEndpoints:

    def test_title_with_providers_summary(self, client, fake_tmdb):
        body = client.get("/api/tmdb/title/movie/603").get_json()
        assert body["title"] == "The Matrix"
        assert body["providers_summary"] == ["Max", "Hulu"]

    def test_title_bad_type(self, client, fake_tmdb):
        assert client.get("/api/tmdb/title/book/603").status_code == 400

    def test_title_upstream_status_passed_through(self, client, fake_tmdb):
        resp = client.get("/api/tmdb/title/movie/1")
        assert resp.status_code == 404
        assert set(resp.get_json()) == {"error", "status", "detail"}

    def test_title_outage(self, client):
        resp = client.get("/api/tmdb/title/tv/1396")
        assert resp.status_code == 503
        assert resp.get_json()["status"] == 503

    def test_details(self, client, fake_tmdb):
        assert client.get("/api/tmdb/search/details?id=603&media_type=movie").get_json()["id"] == 603

    @pytest.mark.parametrize("query", ["", "?id=603", "?media_type=movie", "?id=abc&media_type=movie"])
    def test_details_missing_params(self, client, query):
        assert client.get(f"/api/tmdb/search/details{query}").status_code == 400


# ── /api/trending ─────────────────────────────────────────────────────────────

class TestWeeklyTrending:

    def test_normalized(self, client, fake_tmdb):
        items = client.get("/api/trending").get_json()
        assert items[0] == {
            "tmdb_id": 603, "media_type": "movie", "title": "The Matrix",
            "poster_path": "/matrix.jpg", "overview": None,
        }
        assert ("trending", "movie", "week") in fake_tmdb

    def test_capped_at_twenty(self, client, monkeypatch):
        monkeypatch.setattr(tmdb, "trending", lambda media_type="all", window="day": [
            {"id": n, "title": f"T{n}"} for n in range(30)
        ])
        assert len(client.get("/api/trending").get_json()) == 20

    def test_failure_is_empty_list(self, client):
        assert client.get("/api/trending").get_json() == []


# ── /api/recommendations ──────────────────────────────────────────────────────

class TestRecommendations:

    def test_anonymous_empty(self, client):
        assert client.get("/api/recommendations").get_json() == []

    def test_liked_titles(self, make_user, login):
        c = login(make_user("ana@watchwise.io", "ana"))
        c.put("/api/library/movie/1", json={"title": "Loved", "favorite": True})
        c.put("/api/library/movie/2", json={"title": "Fine", "rating": 3})
        c.put("/api/library/tv/3", json={"title": "Great", "rating": 9})

        recs = c.get("/api/recommendations").get_json()
        assert {(r["media_type"], r["tmdb_id"]) for r in recs} == {("movie", 1), ("tv", 3)}

    def test_threshold_configurable(self, app, make_user, login):
        app.config["RECOMMENDATION_MIN_RATING"] = 8
        c = login(make_user("ana@watchwise.io", "ana"))
        c.put("/api/library/movie/1", json={"title": "Good", "rating": 6})
        assert c.get("/api/recommendations").get_json() == []

    def test_failure_is_empty_list(self, make_user, login, monkeypatch):
        def _boom(*args, **kwargs):
            raise RuntimeError("recommendation backend down")

        monkeypatch.setattr(recommendations, "liked_titles", _boom)
        c = login(make_user("ana@watchwise.io", "ana"))
        resp = c.get("/api/recommendations")
        assert resp.status_code == 200
        assert resp.get_json() == []
