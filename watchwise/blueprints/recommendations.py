"""
Recommendations blueprint.

Seeds the home page "Because you liked…" rail from the viewer's own
favourites and high ratings. Anonymous viewers get an empty list and the
client falls back to trending.
"""
import logging

from flask import Blueprint, jsonify, current_app
from flask_login import current_user

from watchwise.extensions import db
from watchwise.utils.item_service import liked_titles

log = logging.getLogger(__name__)

recs_bp = Blueprint("recommendations", __name__)


@recs_bp.route("/api/recommendations")
def index():
    if not current_user.is_authenticated:
        return jsonify([])
    try:
        items = liked_titles(
            current_user.id,
            min_rating=current_app.config["RECOMMENDATION_MIN_RATING"],
        )
    except Exception:
        db.session.rollback()
        log.exception("Recommendations failed for user %s", current_user.id)
        return jsonify([])
    return jsonify(items)
