"""
Account blueprint — profiles and self-service account deletion.

URLs:
  GET   /api/profile           – my profile (created on first call)
  PATCH /api/profile           – update username / avatar / privacy
  GET   /api/u/<username>      – public profile + recent activity
  POST  /api/account/delete    – delete my account {confirm: "DELETE MY ACCOUNT"}
"""
import logging

from flask import Blueprint, request, jsonify
from flask_login import login_required, logout_user, current_user
from sqlalchemy import func
from werkzeug.datastructures import MultiDict

from watchwise.extensions import db, limiter
from watchwise.forms.profile import ProfileForm
from watchwise.models.profile import Profile
from watchwise.models.user_item import UserItem
from watchwise.utils.account_service import (
    DELETE_PHRASE, delete_account, ensure_profile, serialize_profile, username_taken,
)
from watchwise.utils.feed_service import serialize_activity
from watchwise.utils.helpers import first_error, utcnow

log = logging.getLogger(__name__)

account_bp = Blueprint("account", __name__)

PROFILE_ACTIVITY_LIMIT = 40
_PROFILE_FIELDS = ("username", "avatar_url", "privacy_public")


# ── My profile ────────────────────────────────────────────────────────────────

@account_bp.route("/api/profile")
@login_required
def get_profile():
    return jsonify(profile=serialize_profile(ensure_profile(current_user)))


@account_bp.route("/api/profile", methods=["PATCH"])
@login_required
def update_profile():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify(error="Expected a JSON object"), 400

    # JSON null clears a field; WTForms wants strings
    form = ProfileForm(formdata=MultiDict({
        k: ("" if v is None else v) for k, v in data.items() if k in _PROFILE_FIELDS
    }))
    if not form.validate():
        return jsonify(error=first_error(form), errors=form.errors), 400

    profile = ensure_profile(current_user)
    if "username" in data:
        username = (form.username.data or "").strip()
        if not username:
            return jsonify(error="username: Username cannot be empty."), 400
        if username_taken(username, exclude_user_id=current_user.id):
            return jsonify(error="That username is taken"), 409
        profile.username = username
    if "avatar_url" in data:
        profile.avatar_url = (form.avatar_url.data or "").strip() or None
    if "privacy_public" in data:
        profile.privacy_public = bool(form.privacy_public.data)
    profile.updated_at = utcnow()
    db.session.commit()
    return jsonify(profile=serialize_profile(profile))


# ── Public profile ────────────────────────────────────────────────────────────

@account_bp.route("/api/u/<username>")
def public_profile(username):
    profile = Profile.query.filter(func.lower(Profile.username) == username.lower()).first()
    if profile is None:
        return jsonify(error="User not found"), 404

    viewer_id = current_user.id if current_user.is_authenticated else None
    is_owner  = viewer_id == profile.user_id
    visible   = profile.privacy_public or is_owner

    activity = None
    if visible:
        rows = (
            UserItem.query
            .filter_by(user_id=profile.user_id)
            .order_by(UserItem.updated_at.desc(), UserItem.id.desc())
            .limit(PROFILE_ACTIVITY_LIMIT)
            .all()
        )
        activity = serialize_activity(rows, viewer_id)

    return jsonify(
        profile=serialize_profile(profile),
        is_owner=is_owner,
        private=not profile.privacy_public,
        activity=activity,
    )


# ── Account deletion ──────────────────────────────────────────────────────────

@account_bp.route("/api/account/delete", methods=["POST"])
@login_required
@limiter.limit("5 per hour")
def delete():
    data = request.get_json(silent=True)
    confirm = data.get("confirm") if isinstance(data, dict) else None
    if confirm != DELETE_PHRASE:
        return jsonify(error=f'Type "{DELETE_PHRASE}" exactly to confirm'), 400

    user = current_user._get_current_object()
    counts = delete_account(user)
    logout_user()
    return jsonify(ok=True, deleted=counts)
