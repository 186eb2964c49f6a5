"""
Library service layer — bridges TMDb metadata with the database.

This module owns all logic for:
  - Finding or lazily creating the cached Item row for a title
  - Validating and upserting a user's UserItem (status, favorite, rating, review)
  - Running a bulk import of already-parsed rows into a user's library
  - Serialising Item / UserItem rows for JSON responses

Callers (blueprints) never write Item or UserItem rows directly; they go
through this module so the dedup rules and the upsert merge are always
applied the same way.
"""
import json
import logging
from dataclasses import dataclass, field

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from watchwise.extensions import db
from watchwise.models.item import Item
from watchwise.models.user_item import UserItem, ItemStatus
from watchwise.utils import tmdb
from watchwise.utils.helpers import utcnow, parse_int

log = logging.getLogger(__name__)

RATING_MIN = 0
RATING_MAX = 10
REVIEW_MAX = 5000

_ITEM_FIELDS = ("title", "overview", "poster_path", "release_date", "genres")


class ValidationError(ValueError):
    """Bad client input. ``field`` names the offending key where there is one."""
    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class ImportRowError(Exception):
    """One import row could not be written; the rest of the import carries on."""


# ── Data classes ──────────────────────────────────────────────────────────────

@dataclass
class ImportResult:
    """Summary of a bulk import operation."""
    results: list = field(default_factory=list)

    @property
    def ok(self) -> int:
        return sum(1 for r in self.results if r["ok"])

    @property
    def failed(self) -> int:
        return len(self.results) - self.ok

    def to_dict(self) -> dict:
        return {"ok": self.ok, "failed": self.failed, "results": self.results}


# ── Validation ────────────────────────────────────────────────────────────────

def parse_rating(value) -> int | None:
    """Validate a 0–10 rating. None/"" clear the rating."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError("Rating must be a whole number from 0 to 10", "rating")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError("Rating must be a whole number from 0 to 10", "rating")
        value = int(value)
    rating = parse_int(value)
    if rating is None or not RATING_MIN <= rating <= RATING_MAX:
        raise ValidationError("Rating must be a whole number from 0 to 10", "rating")
    return rating


def clean_patch(data: dict) -> dict:
    """
    Reduce a request body to the UserItem fields it sets, validated.

    Only keys present in *data* end up in the result, so callers can merge the
    patch onto an existing row without clobbering untouched fields.

    Raises:
        ValidationError: any field is out of range or of the wrong type.
    """
    patch = {}
    if "status" in data:
        try:
            patch["status"] = ItemStatus.parse(data["status"])
        except (ValueError, AttributeError):
            raise ValidationError('Status must be "watchlist" or "completed"', "status")
    if "favorite" in data:
        if not isinstance(data["favorite"], bool):
            raise ValidationError("Favorite must be true or false", "favorite")
        patch["favorite"] = data["favorite"]
    if "rating" in data:
        patch["rating"] = parse_rating(data["rating"])
    if "review" in data:
        review = data["review"]
        if review is not None and not isinstance(review, str):
            raise ValidationError("Review must be text", "review")
        review = (review or "").strip() or None
        if review and len(review) > REVIEW_MAX:
            raise ValidationError(f"Review is limited to {REVIEW_MAX} characters", "review")
        patch["review"] = review
    return patch


def check_media_type(media_type: str) -> str:
    if media_type not in tmdb.MEDIA_TYPES:
        raise ValidationError('Invalid type (must be "movie" or "tv")', "media_type")
    return media_type


# ── Item cache ────────────────────────────────────────────────────────────────

def find_item(media_type: str, tmdb_id: int | None = None, title: str | None = None) -> Item | None:
    """
    Look up a cached Item.

    Lookup priority:
      1. tmdb_id + media_type   (catalog id, exact)
      2. title (case-insensitive) within the media type

    The title fallback only adopts rows that have no catalog id yet (or the
    same one) when a tmdb_id was given, so two different titles sharing a
    name never collapse into one row.
    """
    if tmdb_id:
        item = Item.query.filter_by(tmdb_id=tmdb_id, media_type=media_type).first()
        if item:
            return item

    if title:
        query = Item.query.filter(
            Item.media_type == media_type,
            func.lower(Item.title) == title.strip().lower(),
        )
        if tmdb_id:
            query = query.filter(Item.tmdb_id.is_(None))
        return query.order_by(Item.id.asc()).first()

    return None


def ensure_item(media_type: str, tmdb_id: int | None = None, title: str | None = None,
                fetch_missing: bool = True, **meta) -> Item:
    """
    Return the Item for a title, creating it on first interaction.

    When the title is unknown locally and the caller supplied no title but a
    tmdb_id, the metadata is fetched from TMDb (fetch_missing=True).

    Raises:
        ValidationError: bad media type or nothing to identify the title by.
        TMDbError:       metadata fetch failed.
    """
    check_media_type(media_type)
    tmdb_id = parse_int(tmdb_id)
    if not tmdb_id and not title:
        raise ValidationError("A tmdb_id or a title is required", "title")

    item = find_item(media_type, tmdb_id, title)
    if item is not None:
        if tmdb_id and item.tmdb_id is None:
            item.tmdb_id = tmdb_id
        # Fill in anything the cached row is missing
        for attr in _ITEM_FIELDS:
            if meta.get(attr) and not getattr(item, attr):
                setattr(item, attr, meta[attr])
        return item

    if not title and fetch_missing:
        data = tmdb.normalize_title(tmdb.get_title(media_type, tmdb_id, append=None), media_type)
        title = data["title"]
        for attr in _ITEM_FIELDS[1:]:
            meta.setdefault(attr, data[attr])

    item = Item(
        tmdb_id=tmdb_id,
        media_type=media_type,
        title=(title or "Untitled").strip()[:300],
        **{attr: meta.get(attr) for attr in _ITEM_FIELDS[1:]},
    )
    db.session.add(item)
    db.session.flush()
    log.debug("Cached new item %r", item)
    return item


# ── Library entries ───────────────────────────────────────────────────────────

def get_user_item(user_id: int, item: Item | None) -> UserItem | None:
    if item is None:
        return None
    return UserItem.query.filter_by(user_id=user_id, item_id=item.id).first()


def upsert_user_item(user_id: int, item: Item, patch: dict) -> tuple[UserItem, bool]:
    """
    Insert-or-update the (user, item) row, merging *patch* (see clean_patch)
    onto the existing values. Always bumps updated_at so the entry moves to
    the top of the feed.

    Returns (user_item, created). Does NOT commit.
    """
    ui = get_user_item(user_id, item)
    created = ui is None
    if created:
        ui = UserItem(
            user_id=user_id,
            item_id=item.id,
            status=ItemStatus.WATCHLIST,
            favorite=False,
        )
        db.session.add(ui)

    for attr, value in patch.items():
        setattr(ui, attr, value)
    ui.updated_at = utcnow()
    db.session.flush()
    return ui, created


def remove_user_item(user_id: int, item: Item | None) -> bool:
    """Delete the user's entry for *item*. Returns False if there was none."""
    ui = get_user_item(user_id, item)
    if ui is None:
        return False
    db.session.delete(ui)
    db.session.flush()
    return True


# ── Bulk import ───────────────────────────────────────────────────────────────

def ndjson_event(**payload) -> str:
    """One line of an application/x-ndjson progress stream."""
    return json.dumps(payload) + "\n"


def import_row(user_id: int, row) -> dict:
    """
    Add one parsed import row (csv_import.ImportRow) to a user's library.

    The row is committed on its own so a bad row never rolls back the ones
    before it. Row-level failures come back as {"ok": False, "reason": …}
    instead of raising.
    """
    try:
        if not (row.title or row.tmdb_id):
            raise ImportRowError("Row has neither a title nor a tmdb_id")
        item = ensure_item(
            row.media_type,
            tmdb_id=row.tmdb_id,
            title=row.title,
            fetch_missing=False,
            poster_path=row.poster_path,
            release_date=row.release_date,
            genres=row.genres,
        )
        upsert_user_item(user_id, item, {
            "status":   ItemStatus.parse(row.status),
            "favorite": bool(row.favorite),
            "rating":   parse_rating(row.rating),
            "review":   (row.review or "").strip() or None,
        })
        db.session.commit()
    except (ImportRowError, ValueError, tmdb.TMDbError, SQLAlchemyError) as exc:
        db.session.rollback()
        log.warning("Import row %r failed for user %s: %s", row.title, user_id, exc)
        return {"ok": False, "title": row.title, "reason": str(exc) or "unknown error"}
    return {"ok": True, "title": row.title}


def import_rows(user_id: int, rows: list) -> ImportResult:
    """Import every row, collecting per-row outcomes."""
    result = ImportResult()
    for row in rows:
        result.results.append(import_row(user_id, row))
    log.info(
        "Import complete for user %s: %d rows imported, %d failed",
        user_id, result.ok, result.failed,
    )
    return result


def stream_import(user_id: int, rows: list, match=None):
    """
    Generator variant of import_rows — yields NDJSON progress lines.

    Phases: matching (only when *match* is given), importing, done.
    Returns the ImportResult via StopIteration so callers can
    ``result = yield from stream_import(...)``.
    """
    total = len(rows)
    if match is not None:
        matched = []
        for i, row in enumerate(rows, start=1):
            matched.append(match(row))
            yield ndjson_event(type="matching", current=i, total=total)
        rows = matched

    result = ImportResult()
    for i, row in enumerate(rows, start=1):
        result.results.append(import_row(user_id, row))
        yield ndjson_event(type="importing", current=i, total=total)

    log.info(
        "Streaming import complete for user %s: %d rows imported, %d failed",
        user_id, result.ok, result.failed,
    )
    yield ndjson_event(type="done", ok=result.ok, failed=result.failed)
    return result


# ── Recommendations ───────────────────────────────────────────────────────────

def liked_titles(user_id: int, min_rating: int = 4, scan: int = 100, limit: int = 20) -> list[dict]:
    """
    Titles the user liked recently: favourites or rated at least *min_rating*,
    taken from their *scan* most recently updated entries. De-duplicated by
    media type + catalog id; entries without a catalog id are skipped.
    """
    rows = (
        UserItem.query
        .filter_by(user_id=user_id)
        .order_by(UserItem.updated_at.desc())
        .limit(scan)
        .all()
    )

    picked: dict[str, dict] = {}
    for ui in rows:
        liked = ui.favorite or (ui.rating is not None and ui.rating >= min_rating)
        item = ui.item
        if not liked or not item.tmdb_id:
            continue
        key = f"{item.media_type}-{item.tmdb_id}"
        picked.setdefault(key, {
            "tmdb_id":     item.tmdb_id,
            "media_type":  item.media_type,
            "title":       item.title or "Untitled",
            "poster_path": item.poster_path,
            "overview":    item.overview,
        })
    return list(picked.values())[:limit]


# ── Serialisers ───────────────────────────────────────────────────────────────

def serialize_item(item: Item) -> dict:
    return {
        "id":           item.id,
        "tmdb_id":      item.tmdb_id,
        "media_type":   item.media_type,
        "title":        item.title,
        "overview":     item.overview,
        "poster_path":  item.poster_path,
        "poster_url":   tmdb.poster_url(item.poster_path),
        "release_date": item.release_date,
        "year":         item.year,
        "genres":       item.genres or [],
    }


def serialize_user_item(ui: UserItem, include_item: bool = True) -> dict:
    data = {
        "id":         ui.id,
        "user_id":    ui.user_id,
        "status":     ui.status.value,
        "favorite":   ui.favorite,
        "rating":     ui.rating,
        "review":     ui.review,
        "created_at": ui.created_at.isoformat(),
        "updated_at": ui.updated_at.isoformat(),
    }
    if include_item:
        data["item"] = serialize_item(ui.item)
    return data
