"""
Shared fixtures: an app on in-memory SQLite, test clients, users and a
canned TMDb. No test ever reaches the real TMDb API.

Run with:  python -m pytest tests/ -v
"""
from types import SimpleNamespace

import pytest

from watchwise import create_app
from watchwise.extensions import db as _db
from watchwise.models.item import Item
from watchwise.models.user import User
from watchwise.models.user_item import UserItem, ItemStatus
from watchwise.utils import tmdb
from watchwise.utils.account_service import ensure_profile

PASSWORD = "correct-horse-battery"


# ── Canned TMDb payloads ──────────────────────────────────────────────────────

SEARCH_RESULTS = [
    {"id": 603, "media_type": "movie", "title": "The Matrix",
     "release_date": "1999-03-30", "poster_path": "/matrix.jpg", "genre_ids": [28, 878]},
    {"id": 604, "media_type": "movie", "title": "The Matrix Reloaded",
     "release_date": "2003-05-15", "poster_path": "/reloaded.jpg", "genre_ids": [28]},
    {"id": 6384, "media_type": "person", "name": "Keanu Reeves"},
]

TITLE_DETAILS = {
    "id": 603,
    "title": "The Matrix",
    "overview": "A hacker learns the truth.",
    "poster_path": "/matrix.jpg",
    "release_date": "1999-03-30",
    "genres": [{"id": 28, "name": "Action"}, {"id": 878, "name": "Science Fiction"}],
    "watch/providers": {"results": {"US": {
        "flatrate": [{"provider_name": "Max"}, {"provider_name": "Hulu"}],
        "rent": [{"provider_name": "Apple TV"}],
    }}},
}


@pytest.fixture(autouse=True)
def no_network(monkeypatch):
    """Any TMDb call that a test did not stub fails like an outage."""
    def _offline(path, params=None):
        raise tmdb.TMDbError("network disabled in tests", status_code=503)
    monkeypatch.setattr(tmdb, "_get", _offline)


@pytest.fixture
def fake_tmdb(monkeypatch):
    """Stub the public TMDb functions with canned payloads; records calls."""
    calls = []

    def search_multi(query, page=1):
        calls.append(("search", query))
        return [dict(r) for r in SEARCH_RESULTS]

    def trending(media_type="all", window="day"):
        calls.append(("trending", media_type, window))
        return [dict(r) for r in SEARCH_RESULTS[:2]]

    def popular_movies(page=1):
        calls.append(("popular", page))
        return [dict(SEARCH_RESULTS[0])]

    def get_title(media_type, tmdb_id, append=tmdb.TITLE_APPEND):
        calls.append(("title", media_type, tmdb_id))
        if tmdb_id != 603:
            raise tmdb.TMDbError("Title not found", status_code=404, not_found=True)
        return dict(TITLE_DETAILS)

    def get_details(media_type, tmdb_id):
        return get_title(media_type, tmdb_id, append="images,credits")

    monkeypatch.setattr(tmdb, "search_multi", search_multi)
    monkeypatch.setattr(tmdb, "trending", trending)
    monkeypatch.setattr(tmdb, "popular_movies", popular_movies)
    monkeypatch.setattr(tmdb, "get_title", get_title)
    monkeypatch.setattr(tmdb, "get_details", get_details)
    return calls


# ── App / DB ──────────────────────────────────────────────────────────────────
# Requests must not run inside a long-lived app context (Flask-Login caches the
# user on g), so fixtures push short contexts of their own and hand back plain
# ids instead of ORM instances.

@pytest.fixture
def app():
    app = create_app("testing")
    yield app
    with app.app_context():
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def ctx(app):
    """An app context for service-level tests that make no HTTP requests."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    """Factory: make_user("ana@watchwise.io", username="ana", public=True)."""
    def _make(email, username=None, public=True):
        with app.app_context():
            user = User(email=email)
            user.set_password(PASSWORD)
            _db.session.add(user)
            _db.session.commit()
            profile = ensure_profile(user, username)
            profile.privacy_public = public
            _db.session.commit()
            return SimpleNamespace(id=user.id, email=user.email, username=profile.username)
    return _make


@pytest.fixture
def login(app):
    """login(user) → a fresh test client signed in as *user*."""
    def _login(user):
        c = app.test_client()
        resp = c.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})
        assert resp.status_code == 200, resp.get_json()
        return c
    return _login


@pytest.fixture
def add_entry(app):
    """Factory: a UserItem for *user* on a (possibly new) movie."""
    counter = {"n": 1000}

    def _add(user, title=None, tmdb_id=None, review=None, rating=None, favorite=False,
             status=ItemStatus.COMPLETED, updated_at=None, media_type="movie"):
        counter["n"] += 1
        tmdb_id = tmdb_id or counter["n"]
        with app.app_context():
            item = Item.query.filter_by(tmdb_id=tmdb_id, media_type=media_type).first()
            if item is None:
                item = Item(tmdb_id=tmdb_id, media_type=media_type, title=title or f"Film {tmdb_id}")
                _db.session.add(item)
                _db.session.flush()
            ui = UserItem(user_id=user.id, item_id=item.id, status=status, favorite=favorite,
                          rating=rating, review=review)
            if updated_at is not None:
                ui.updated_at = updated_at
            _db.session.add(ui)
            _db.session.commit()
            return SimpleNamespace(id=ui.id, item_id=item.id, tmdb_id=tmdb_id,
                                   updated_at=ui.updated_at)
    return _add
