"""
Watch-history import — CSV parsing, payload validation and TMDb matching.

Pure functions only: nothing here touches the database, and the matcher takes
the search function as an argument so it can be exercised with canned
results. The write side lives in item_service.import_rows().

Supported exports:
  Letterboxd  Title, Year, WatchedDate, Rating (0.5–5 stars), Tags, Review
  Trakt       type, title/movie_title/show_title, year/movie_year/show_year,
              action, rating/user_rating, review
"""
import csv
import io
import logging
import re
from dataclasses import dataclass, replace

from watchwise.utils import tmdb
from watchwise.utils.helpers import parse_int

log = logging.getLogger(__name__)

SOURCES = ("letterboxd", "trakt")
STATUSES = ("watchlist", "completed")

# Search results without a parseable year sort behind every dated one
_NO_YEAR_DELTA = 9999

_PUNCT_RE = re.compile(r"[^\w\s]", re.UNICODE)
_SPACE_RE = re.compile(r"\s+")


@dataclass
class ImportRow:
    """One normalised watch-history row, before or after TMDb matching."""
    media_type: str
    title: str
    year: int | None = None
    status: str = "watchlist"
    favorite: bool = False
    rating: int | None = None
    review: str | None = None
    tmdb_id: int | None = None
    poster_path: str | None = None
    release_date: str | None = None
    genres: list | None = None


# ── Row normalisers ───────────────────────────────────────────────────────────

def _clean(value) -> str:
    return (value or "").strip()


def _rating(raw: str, scale: float = 1.0) -> int | None:
    """Parse a rating string onto the 0–10 scale; garbage or out-of-range → None."""
    raw = _clean(raw)
    if not raw:
        return None
    try:
        value = round(float(raw) * scale)
    except ValueError:
        return None
    return value if 0 <= value <= 10 else None


def normalize_letterboxd(row: dict) -> ImportRow | None:
    title = _clean(row.get("Title"))
    if not title:
        return None
    return ImportRow(
        media_type="movie",
        title=title,
        year=parse_int(_clean(row.get("Year"))) or None,
        status="completed" if _clean(row.get("WatchedDate")) else "watchlist",
        favorite="favorite" in _clean(row.get("Tags")).lower(),
        # Letterboxd rates in half stars out of 5
        rating=_rating(row.get("Rating"), scale=2.0),
        review=_clean(row.get("Review")) or None,
    )


def normalize_trakt(row: dict) -> ImportRow | None:
    kind = _clean(row.get("type")).lower()
    media_type = "tv" if ("show" in kind or kind in ("episode", "tv")) else "movie"

    title = (
        _clean(row.get("title"))
        or _clean(row.get("movie_title"))
        or _clean(row.get("show_title"))
    )
    if not title:
        return None

    year = parse_int(
        _clean(row.get("year")) or _clean(row.get("movie_year")) or _clean(row.get("show_year"))
    )
    action = _clean(row.get("action")).lower()
    return ImportRow(
        media_type=media_type,
        title=title,
        year=year or None,
        status="watchlist" if action in ("watchlisted", "watchlist") else "completed",
        favorite=False,
        rating=_rating(row.get("rating") or row.get("user_rating")),
        review=_clean(row.get("review")) or None,
    )


_NORMALIZERS = {
    "letterboxd": normalize_letterboxd,
    "trakt":      normalize_trakt,
}


def parse_csv(text: str, source: str) -> list[ImportRow]:
    """
    Parse an exported CSV into ImportRows. Rows without a title are dropped.

    Raises:
        ValueError: unknown source.
    """
    normalize = _NORMALIZERS.get((source or "").lower())
    if normalize is None:
        raise ValueError(f"Unknown import source {source!r} (expected one of {', '.join(SOURCES)})")

    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    rows = []
    for raw in reader:
        if not any(_clean(v) for v in raw.values() if isinstance(v, str)):
            continue
        row = normalize(raw)
        if row is not None:
            rows.append(row)
    log.debug("Parsed %d %s rows", len(rows), source)
    return rows


# ── JSON payload validation (POST /api/import) ────────────────────────────────

def validate_payload(data) -> tuple[list[ImportRow], dict]:
    """
    Validate an import payload of the form {"items": [ {...}, … ]}.

    Returns (rows, errors). errors maps "items.<index>.<field>" to a message
    and is empty when every row is valid; rows is only meaningful then.
    """
    if not isinstance(data, dict) or not isinstance(data.get("items"), list):
        return [], {"items": "Expected an object with an 'items' list"}

    rows: list[ImportRow] = []
    errors: dict = {}
    for idx, raw in enumerate(data["items"]):
        prefix = f"items.{idx}"
        if not isinstance(raw, dict):
            errors[prefix] = "Expected an object"
            continue

        media_type = raw.get("media_type")
        if media_type not in tmdb.MEDIA_TYPES:
            errors[f"{prefix}.media_type"] = 'Must be "movie" or "tv"'
        title = raw.get("title")
        if not isinstance(title, str) or not title.strip():
            errors[f"{prefix}.title"] = "Required"
        status = raw.get("status") or "watchlist"
        if status not in STATUSES:
            errors[f"{prefix}.status"] = 'Must be "watchlist" or "completed"'
        favorite = raw.get("favorite", False)
        if not isinstance(favorite, bool):
            errors[f"{prefix}.favorite"] = "Must be a boolean"

        numbers = {}
        for key in ("tmdb_id", "year", "rating"):
            value = raw.get(key)
            if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float))):
                errors[f"{prefix}.{key}"] = "Must be a number"
            elif key == "rating":
                # Range and fractional checks happen at write time (parse_rating)
                numbers[key] = value
            else:
                numbers[key] = int(value) if value is not None else None

        for key in ("review", "poster_path", "release_date"):
            value = raw.get(key)
            if value is not None and not isinstance(value, str):
                errors[f"{prefix}.{key}"] = "Must be a string"
        genres = raw.get("genres")
        if genres is not None and (
            not isinstance(genres, list)
            or not all(isinstance(g, int) and not isinstance(g, bool) for g in genres)
        ):
            errors[f"{prefix}.genres"] = "Must be a list of numbers"

        if any(k.startswith(prefix + ".") or k == prefix for k in errors):
            continue

        rows.append(ImportRow(
            media_type=media_type,
            title=title.strip(),
            year=numbers["year"],
            status=status,
            favorite=favorite,
            rating=numbers["rating"],
            review=raw.get("review"),
            tmdb_id=numbers["tmdb_id"],
            poster_path=raw.get("poster_path"),
            release_date=raw.get("release_date"),
            genres=genres,
        ))
    return rows, errors


# ── TMDb matching ─────────────────────────────────────────────────────────────

def normalize_title_key(title: str) -> str:
    """Casefold, drop punctuation and collapse whitespace: "Amélie!" → "amélie"."""
    text = _PUNCT_RE.sub(" ", (title or "").casefold())
    return _SPACE_RE.sub(" ", text).strip()


def pick_best(row: ImportRow, results: list[dict]) -> dict | None:
    """
    Choose the search result that best matches *row*.

    1. Candidates are results of the row's media type, or every non-person
       result when none has that type.
    2. Candidates whose normalised title equals the row's are preferred.
    3. With a year, the smallest |release year - year| wins; the earliest
       result wins ties. Without a year the first candidate wins.
    """
    typed = [r for r in results if r.get("media_type") == row.media_type]
    candidates = typed or [r for r in results if r.get("media_type") != "person"]
    if not candidates:
        return None

    key = normalize_title_key(row.title)
    exact = [
        r for r in candidates
        if normalize_title_key(r.get("title") or r.get("name") or "") == key
    ]
    pool = exact or candidates

    best = pool[0]
    if row.year:
        best_delta = None
        for r in pool:
            year = tmdb.release_year(r)
            delta = abs(year - row.year) if year else _NO_YEAR_DELTA
            if best_delta is None or delta < best_delta:
                best, best_delta = r, delta
    return best


def match_row(row: ImportRow, search=None) -> ImportRow:
    """
    Fill in tmdb_id/poster/release date/genres from the best TMDb search hit.

    Rows that already carry a tmdb_id are returned untouched; rows with no hit,
    or whose search failed, come back unmatched rather than raising.
    """
    if row.tmdb_id:
        return row
    search = search or tmdb.search_multi

    query = f"{row.title} {row.year}" if row.year else row.title
    try:
        results = search(query)
    except tmdb.TMDbError as exc:
        log.warning("TMDb search failed for %r: %s", query, exc)
        return row

    best = pick_best(row, results)
    if best is None or best.get("id") is None:
        return row

    media_type = best.get("media_type")
    return replace(
        row,
        media_type=media_type if media_type in tmdb.MEDIA_TYPES else row.media_type,
        tmdb_id=int(best["id"]),
        poster_path=best.get("poster_path"),
        release_date=best.get("release_date") or best.get("first_air_date"),
        genres=best.get("genre_ids") or None,
    )


def match_rows(rows: list[ImportRow], search=None) -> list[ImportRow]:
    return [match_row(r, search) for r in rows]
