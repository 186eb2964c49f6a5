"""
Library blueprint — the viewer's watchlist / completed / favourites and
per-title entries.

URLs:
  GET    /api/library?filter=&type=                  – my entries
  GET    /api/library/<media_type>/<tmdb_id>         – my entry for a title
  PUT    /api/library/<media_type>/<tmdb_id>         – upsert my entry
  DELETE /api/library/<media_type>/<tmdb_id>         – remove my entry
  GET    /api/titles/<media_type>/<tmdb_id>/reviews  – community reviews
"""
import logging

from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user

from watchwise.extensions import db
from watchwise.models.item import Item
from watchwise.models.user_item import UserItem, ItemStatus
from watchwise.utils import tmdb
from watchwise.utils.feed_service import title_reviews
from watchwise.utils.item_service import (
    ValidationError, check_media_type, clean_patch, ensure_item, find_item,
    get_user_item, upsert_user_item, remove_user_item, serialize_user_item,
)

log = logging.getLogger(__name__)

library_bp = Blueprint("library", __name__)

FILTERS     = ("all", "watchlist", "completed", "favorites")
TYPE_FILTER = ("all",) + tmdb.MEDIA_TYPES
_META_KEYS  = ("overview", "poster_path", "release_date")


@library_bp.errorhandler(ValidationError)
def validation_error(exc):
    return jsonify(error=str(exc), field=exc.field), 400


# ── Library list ──────────────────────────────────────────────────────────────

@library_bp.route("/api/library")
@login_required
def index():
    flt   = request.args.get("filter", "all").lower()
    mtype = request.args.get("type", "all").lower()
    if flt not in FILTERS:
        raise ValidationError(f"filter must be one of {', '.join(FILTERS)}", "filter")
    if mtype not in TYPE_FILTER:
        raise ValidationError(f"type must be one of {', '.join(TYPE_FILTER)}", "type")

    query = UserItem.query.join(Item).filter(UserItem.user_id == current_user.id)
    if flt == "watchlist":
        query = query.filter(UserItem.status == ItemStatus.WATCHLIST)
    elif flt == "completed":
        query = query.filter(UserItem.status == ItemStatus.COMPLETED)
    elif flt == "favorites":
        query = query.filter(UserItem.favorite.is_(True))
    if mtype != "all":
        query = query.filter(Item.media_type == mtype)

    rows = query.order_by(UserItem.updated_at.desc(), UserItem.id.desc()).all()
    return jsonify(items=[serialize_user_item(ui) for ui in rows], count=len(rows))


# ── Single entry ──────────────────────────────────────────────────────────────

@library_bp.route("/api/library/<media_type>/<int:tmdb_id>")
@login_required
def get_entry(media_type, tmdb_id):
    check_media_type(media_type)
    ui = get_user_item(current_user.id, find_item(media_type, tmdb_id))
    return jsonify(entry=serialize_user_item(ui) if ui else None)


@library_bp.route("/api/library/<media_type>/<int:tmdb_id>", methods=["PUT"])
@login_required
def put_entry(media_type, tmdb_id):
    check_media_type(media_type)
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify(error="Expected a JSON object"), 400

    patch = clean_patch(data)
    title = data.get("title")
    if title is not None and not isinstance(title, str):
        raise ValidationError("Title must be text", "title")
    meta = {k: data[k] for k in _META_KEYS if isinstance(data.get(k), str)}
    if isinstance(data.get("genres"), list):
        meta["genres"] = [g for g in data["genres"] if isinstance(g, int)]

    try:
        item = ensure_item(media_type, tmdb_id, title=(title or "").strip() or None, **meta)
    except tmdb.TMDbError as exc:
        db.session.rollback()
        log.warning("Could not fetch %s/%s from TMDb: %s", media_type, tmdb_id, exc)
        status = 404 if exc.not_found else 502
        return jsonify(error=str(exc)), status

    ui, created = upsert_user_item(current_user.id, item, patch)
    db.session.commit()
    return jsonify(entry=serialize_user_item(ui)), 201 if created else 200


@library_bp.route("/api/library/<media_type>/<int:tmdb_id>", methods=["DELETE"])
@login_required
def delete_entry(media_type, tmdb_id):
    check_media_type(media_type)
    if not remove_user_item(current_user.id, find_item(media_type, tmdb_id)):
        return jsonify(error="Not in your library"), 404
    db.session.commit()
    return jsonify(ok=True)


# ── Title reviews ─────────────────────────────────────────────────────────────

@library_bp.route("/api/titles/<media_type>/<int:tmdb_id>/reviews")
def reviews(media_type, tmdb_id):
    check_media_type(media_type)
    item = find_item(media_type, tmdb_id)
    if item is None:
        return jsonify(reviews=[])
    viewer_id = current_user.id if current_user.is_authenticated else None
    return jsonify(reviews=title_reviews(item, viewer_id))
