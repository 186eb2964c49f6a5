"""
Social blueprint — emoji reactions and comments on feed activity.

URLs:
  POST   /api/reactions  {user_item_id, emoji}     – react (append-only)
  DELETE /api/reactions?user_item_id=&emoji=       – remove my reaction
  GET    /api/comments?user_item_id=               – thread, oldest first
  POST   /api/comments   {user_item_id, content}   – comment
  DELETE /api/comments/<id>                        – delete my comment
"""
import logging

from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user

from watchwise.extensions import db, limiter
from watchwise.models.social import Reaction, Comment
from watchwise.utils.feed_service import reaction_counts, serialize_comment, visible_activity
from watchwise.utils.helpers import parse_int

log = logging.getLogger(__name__)

social_bp = Blueprint("social", __name__)

EMOJI_MAX   = 8
COMMENT_MAX = 1000


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


# ── Reactions ─────────────────────────────────────────────────────────────────

@social_bp.route("/api/reactions", methods=["POST"])
@login_required
@limiter.limit("60 per minute")
def add_reaction():
    data  = _json_body()
    ui_id = parse_int(data.get("user_item_id"))
    emoji = str(data.get("emoji") or "").strip()[:EMOJI_MAX]
    if not ui_id or not emoji:
        return jsonify(error="user_item_id and emoji are required"), 400
    if visible_activity(ui_id, current_user.id) is None:
        return jsonify(error="Activity not found"), 404

    db.session.add(Reaction(user_id=current_user.id, user_item_id=ui_id, emoji=emoji))
    db.session.commit()
    return jsonify(ok=True, reactions=reaction_counts([ui_id]).get(ui_id, {})), 201


@social_bp.route("/api/reactions", methods=["DELETE"])
@login_required
def remove_reaction():
    ui_id = parse_int(request.args.get("user_item_id"))
    emoji = (request.args.get("emoji") or "").strip()[:EMOJI_MAX]
    if not ui_id or not emoji:
        return jsonify(error="user_item_id and emoji are required"), 400

    removed = Reaction.query.filter_by(
        user_id=current_user.id, user_item_id=ui_id, emoji=emoji,
    ).delete()
    db.session.commit()
    return jsonify(ok=True, removed=removed, reactions=reaction_counts([ui_id]).get(ui_id, {}))


# ── Comments ──────────────────────────────────────────────────────────────────

@social_bp.route("/api/comments")
def list_comments():
    ui_id = parse_int(request.args.get("user_item_id"))
    if not ui_id:
        return jsonify(error="user_item_id required"), 400
    viewer_id = current_user.id if current_user.is_authenticated else None
    ui = visible_activity(ui_id, viewer_id)
    if ui is None:
        return jsonify(error="Activity not found"), 404

    return jsonify(comments=[serialize_comment(c, viewer_id) for c in ui.comments])


@social_bp.route("/api/comments", methods=["POST"])
@login_required
@limiter.limit("20 per minute")
def add_comment():
    data    = _json_body()
    ui_id   = parse_int(data.get("user_item_id"))
    content = str(data.get("content") or "").strip()[:COMMENT_MAX]
    if not ui_id or not content:
        return jsonify(error="user_item_id and content are required"), 400
    if visible_activity(ui_id, current_user.id) is None:
        return jsonify(error="Activity not found"), 404

    comment = Comment(user_id=current_user.id, user_item_id=ui_id, content=content)
    db.session.add(comment)
    db.session.commit()
    return jsonify(ok=True, comment=serialize_comment(comment, current_user.id)), 201


@social_bp.route("/api/comments/<int:comment_id>", methods=["DELETE"])
@login_required
def delete_comment(comment_id):
    comment = db.session.get(Comment, comment_id)
    if comment is None:
        return jsonify(error="Comment not found"), 404
    if comment.user_id != current_user.id:
        return jsonify(error="You can only delete your own comments"), 403

    db.session.delete(comment)
    db.session.commit()
    return jsonify(ok=True)
