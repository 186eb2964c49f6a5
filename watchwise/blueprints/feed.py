"""
Feed blueprint — community activity and per-viewer suppression lists.

URLs:
  GET    /api/feed?cursor=&limit=&reviews_only=   – one page of activity
  POST   /api/feed/hide    {item_id}              – hide a title from my feed
  DELETE /api/feed/hide?item_id=                  – un-hide
  POST   /api/feed/mute    {muted_user_id}        – mute a user
  DELETE /api/feed/mute?muted_user_id=            – un-mute
  GET    /api/feed/muted                          – my muted users
"""
import logging

from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required, current_user

from watchwise.extensions import db
from watchwise.models.item import Item
from watchwise.models.suppression import Hidden, MutedUser
from watchwise.models.user import User
from watchwise.utils.feed_service import (
    clamp_limit, parse_cursor, feed_page, serialize_activity, serialize_author,
)
from watchwise.utils.helpers import parse_int

log = logging.getLogger(__name__)

feed_bp = Blueprint("feed", __name__)


def _viewer_id() -> int | None:
    return current_user.id if current_user.is_authenticated else None


def _body_id(key: str) -> int | None:
    data = request.get_json(silent=True) or {}
    return parse_int(data.get(key)) if isinstance(data, dict) else None


# ── Feed ──────────────────────────────────────────────────────────────────────

@feed_bp.route("/api/feed")
def index():
    cfg   = current_app.config
    limit = clamp_limit(request.args.get("limit"), cfg["FEED_DEFAULT_LIMIT"], cfg["FEED_MAX_LIMIT"])
    try:
        cursor = parse_cursor(request.args.get("cursor"))
    except ValueError:
        return jsonify(error="Invalid cursor"), 400
    reviews_only = request.args.get("reviews_only", "").lower() in ("1", "true")

    viewer_id = _viewer_id()
    page = feed_page(viewer_id, cursor=cursor, limit=limit, reviews_only=reviews_only)
    return jsonify(
        items=serialize_activity(page.rows, viewer_id),
        next_cursor=page.next_cursor,
        has_more=page.has_more,
    )


# ── Hidden items ──────────────────────────────────────────────────────────────

@feed_bp.route("/api/feed/hide", methods=["POST"])
@login_required
def hide():
    item_id = _body_id("item_id")
    if not item_id:
        return jsonify(error="item_id required"), 400
    if db.session.get(Item, item_id) is None:
        return jsonify(error="Item not found"), 404

    if not Hidden.query.filter_by(user_id=current_user.id, item_id=item_id).first():
        db.session.add(Hidden(user_id=current_user.id, item_id=item_id))
        db.session.commit()
    return jsonify(ok=True)


@feed_bp.route("/api/feed/hide", methods=["DELETE"])
@login_required
def unhide():
    item_id = parse_int(request.args.get("item_id"))
    if not item_id:
        return jsonify(error="item_id required"), 400

    Hidden.query.filter_by(user_id=current_user.id, item_id=item_id).delete()
    db.session.commit()
    return jsonify(ok=True)


# ── Muted users ───────────────────────────────────────────────────────────────

@feed_bp.route("/api/feed/mute", methods=["POST"])
@login_required
def mute():
    muted_id = _body_id("muted_user_id")
    if not muted_id:
        return jsonify(error="muted_user_id required"), 400
    if muted_id == current_user.id:
        return jsonify(error="You cannot mute yourself"), 400
    if db.session.get(User, muted_id) is None:
        return jsonify(error="User not found"), 404

    if not MutedUser.query.filter_by(user_id=current_user.id, muted_user_id=muted_id).first():
        db.session.add(MutedUser(user_id=current_user.id, muted_user_id=muted_id))
        db.session.commit()
    return jsonify(ok=True)


@feed_bp.route("/api/feed/mute", methods=["DELETE"])
@login_required
def unmute():
    muted_id = parse_int(request.args.get("muted_user_id"))
    if not muted_id:
        return jsonify(error="muted_user_id required"), 400

    MutedUser.query.filter_by(user_id=current_user.id, muted_user_id=muted_id).delete()
    db.session.commit()
    return jsonify(ok=True)


@feed_bp.route("/api/feed/muted")
@login_required
def muted():
    rows = (
        MutedUser.query
        .filter_by(user_id=current_user.id)
        .order_by(MutedUser.created_at.desc())
        .all()
    )
    return jsonify(muted=[
        {**serialize_author(m.muted_user), "muted_at": m.created_at.isoformat()}
        for m in rows
    ])
