"""
TMDb API wrapper — pure HTTP layer, no database interaction.

Credentials come from the app config: a v4 read token (TMDB_READ_TOKEN, sent
as a Bearer header) is preferred, a v3 key (TMDB_API_KEY, sent as the
api_key query parameter) is the fallback. Functions raise TMDbError on any
non-2xx response, network failure or missing credentials so route handlers
can degrade to empty results instead of crashing.

TMDb API reference: https://developer.themoviedb.org/reference
"""
import logging

import requests
from flask import current_app

log = logging.getLogger(__name__)

_BASE = "https://api.themoviedb.org/3"
_SESSION = requests.Session()
_SESSION.headers.update({"Accept": "application/json", "Content-Type": "application/json;charset=utf-8"})

IMAGE_BASE  = "https://image.tmdb.org/t/p"
MEDIA_TYPES = ("movie", "tv")

# Everything the title page needs in one round trip
TITLE_APPEND = (
    "credits,release_dates,watch/providers,external_ids,"
    "images,videos,recommendations,similar"
)


class TMDbError(Exception):
    """Raised when TMDb returns an error, the network fails, or no credentials are set."""
    def __init__(self, message: str, status_code: int = None, not_found: bool = False,
                 detail: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.not_found = not_found
        self.detail = detail


# ── Internal helpers ──────────────────────────────────────────────────────────

def _credentials() -> tuple[dict, dict]:
    """Return (headers, params) carrying whichever credential is configured."""
    token = current_app.config.get("TMDB_READ_TOKEN")
    if token:
        return {"Authorization": f"Bearer {token}"}, {}
    key = current_app.config.get("TMDB_API_KEY")
    if key:
        return {}, {"api_key": key}
    raise TMDbError("TMDb credentials missing — set TMDB_READ_TOKEN or TMDB_API_KEY")


def _get(path: str, params: dict = None) -> dict:
    """GET a TMDb path and return parsed JSON."""
    headers, auth_params = _credentials()
    query = {"language": "en-US", **(params or {}), **auth_params}
    try:
        resp = _SESSION.get(
            f"{_BASE}{path}",
            params=query,
            headers=headers,
            timeout=current_app.config.get("TMDB_TIMEOUT", 10),
        )
    except requests.RequestException as exc:
        raise TMDbError(f"Network error contacting TMDb: {exc}") from exc

    if resp.status_code == 404:
        raise TMDbError("Title not found", status_code=404, not_found=True,
                        detail=resp.text[:500])
    if resp.status_code == 429:
        raise TMDbError("TMDb rate limit hit — try again shortly", status_code=429)
    if not resp.ok:
        raise TMDbError(
            f"TMDb returned {resp.status_code}",
            status_code=resp.status_code,
            detail=resp.text[:500],
        )

    try:
        return resp.json()
    except ValueError as exc:
        raise TMDbError("TMDb returned a non-JSON body", status_code=resp.status_code) from exc


def _check_media_type(media_type: str) -> None:
    if media_type not in MEDIA_TYPES:
        raise ValueError(f'Invalid media type {media_type!r} (must be "movie" or "tv")')


# ── Pure helpers (no HTTP) ────────────────────────────────────────────────────

def has_credentials() -> bool:
    return bool(current_app.config.get("TMDB_READ_TOKEN") or current_app.config.get("TMDB_API_KEY"))


def poster_url(path: str | None, size: str = "w500") -> str | None:
    """Absolute image CDN URL for a TMDb poster/backdrop path."""
    if not path:
        return None
    return f"{IMAGE_BASE}/{size}{path}"


def release_year(data: dict) -> int | None:
    """Year from release_date (movies) or first_air_date (tv), if present."""
    raw = data.get("release_date") or data.get("first_air_date") or ""
    head = str(raw)[:4]
    return int(head) if head.isdigit() else None


def normalize_title(data: dict, media_type: str | None = None) -> dict:
    """
    Flatten a TMDb search/trending/details object into the fields our Item
    model caches. Works for both list results (genre_ids) and detail objects
    (genres: [{id, name}]).
    """
    genres = data.get("genre_ids")
    if genres is None and data.get("genres"):
        genres = [g["id"] for g in data["genres"] if isinstance(g, dict) and "id" in g]

    return {
        "tmdb_id":      int(data["id"]),
        "media_type":   media_type or data.get("media_type") or "movie",
        "title":        data.get("title") or data.get("name") or "Untitled",
        "overview":     data.get("overview") or None,
        "poster_path":  data.get("poster_path") or None,
        "release_date": data.get("release_date") or data.get("first_air_date") or None,
        "genres":       genres or None,
    }


def provider_names(providers: dict | None, country: str = "US", limit: int = 3) -> list[str]:
    """
    First *limit* provider names for *country* from a watch/providers payload.
    Streaming (flatrate) wins over rent, rent over buy.
    """
    entry = ((providers or {}).get("results") or {}).get(country)
    if not entry:
        return []
    offers = entry.get("flatrate") or entry.get("rent") or entry.get("buy") or []
    return [p.get("provider_name") for p in offers if p.get("provider_name")][:limit]


# ── Public API functions ──────────────────────────────────────────────────────

def search_multi(query: str, page: int = 1) -> list[dict]:
    """
    Multi search (movies, tv and people) — raw TMDb result objects.

    Raises:
        TMDbError: API error or missing credentials.
    """
    data = _get("/search/multi", params={"query": query, "include_adult": "false", "page": page})
    return data.get("results") or []


def trending(media_type: str = "all", window: str = "day") -> list[dict]:
    """Trending titles. media_type is all|movie|tv, window is day|week."""
    data = _get(f"/trending/{media_type}/{window}")
    return data.get("results") or []


def popular_movies(page: int = 1) -> list[dict]:
    data = _get("/movie/popular", params={"page": page})
    return data.get("results") or []


def get_title(media_type: str, tmdb_id: int, append: str | None = TITLE_APPEND) -> dict:
    """
    Full details for one title, optionally with appended sub-resources.

    Raises:
        ValueError: media_type is not movie/tv.
        TMDbError:  Not found or API error.
    """
    _check_media_type(media_type)
    params = {"append_to_response": append} if append else None
    return _get(f"/{media_type}/{int(tmdb_id)}", params=params)


def get_details(media_type: str, tmdb_id: int) -> dict:
    """Lighter detail lookup used by search previews (images + credits only)."""
    return get_title(media_type, tmdb_id, append="images,credits")
