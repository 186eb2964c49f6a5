"""
Auth blueprint — session login for the JSON API.

URLs:
  GET  /api/auth/csrf      – CSRF token for the X-CSRFToken header
  POST /api/auth/register  – create an account and sign in
  POST /api/auth/login     – sign in (rate limited)
  POST /api/auth/logout    – end the session
  GET  /api/auth/me        – current user + profile
  POST /api/auth/password  – change password
  POST /api/auth/email     – change email
"""
import logging

from flask import Blueprint, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from flask_wtf.csrf import generate_csrf
from sqlalchemy import func

from watchwise.extensions import db, limiter
from watchwise.forms.auth import RegisterForm, LoginForm, PasswordForm, EmailForm
from watchwise.models.user import User
from watchwise.utils.account_service import ensure_profile, serialize_profile, username_taken
from watchwise.utils.helpers import first_error, utcnow

log = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)


def _email_taken(email: str, exclude_user_id: int | None = None) -> bool:
    query = User.query.filter(func.lower(User.email) == email.lower())
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    return query.first() is not None


def _me(user) -> dict:
    profile = ensure_profile(user)
    return {
        "id":         user.id,
        "email":      user.email,
        "created_at": user.created_at.isoformat(),
        "profile":    serialize_profile(profile),
    }


@auth_bp.route("/api/auth/csrf")
def csrf_token():
    return jsonify(csrf_token=generate_csrf())


@auth_bp.route("/api/auth/register", methods=["POST"])
@limiter.limit("10 per hour")
def register():
    form = RegisterForm()
    if not form.validate_on_submit():
        return jsonify(error=first_error(form), errors=form.errors), 400

    email = form.email.data.strip().lower()
    if _email_taken(email):
        return jsonify(error="An account with that email already exists"), 409
    username = (form.username.data or "").strip() or None
    if username and username_taken(username):
        return jsonify(error="That username is taken"), 409

    user = User(email=email)
    user.set_password(form.password.data)
    db.session.add(user)
    db.session.commit()
    ensure_profile(user, username)

    login_user(user)
    log.info("Registered user %s", user.id)
    return jsonify(user=_me(user)), 201


@auth_bp.route("/api/auth/login", methods=["POST"])
@limiter.limit("10 per minute")
def login():
    form = LoginForm()
    if not form.validate_on_submit():
        return jsonify(error=first_error(form), errors=form.errors), 400

    user = User.query.filter(func.lower(User.email) == form.email.data.strip().lower()).first()
    if user is None or not user.check_password(form.password.data):
        return jsonify(error="Invalid email or password"), 401
    if not user.is_active:
        return jsonify(error="This account is disabled"), 403

    login_user(user, remember=bool(form.remember.data))
    user.last_login = utcnow()
    db.session.commit()
    return jsonify(user=_me(user))


@auth_bp.route("/api/auth/logout", methods=["POST"])
def logout():
    logout_user()
    return jsonify(ok=True)


@auth_bp.route("/api/auth/me")
@login_required
def me():
    return jsonify(user=_me(current_user))


@auth_bp.route("/api/auth/password", methods=["POST"])
@login_required
@limiter.limit("10 per hour")
def change_password():
    form = PasswordForm()
    if not form.validate_on_submit():
        return jsonify(error=first_error(form), errors=form.errors), 400
    if not current_user.check_password(form.current_password.data):
        return jsonify(error="Current password is incorrect"), 400

    current_user.set_password(form.new_password.data)
    db.session.commit()
    log.info("User %s changed their password", current_user.id)
    return jsonify(ok=True)


@auth_bp.route("/api/auth/email", methods=["POST"])
@login_required
def change_email():
    form = EmailForm()
    if not form.validate_on_submit():
        return jsonify(error=first_error(form), errors=form.errors), 400

    email = form.email.data.strip().lower()
    if _email_taken(email, exclude_user_id=current_user.id):
        return jsonify(error="An account with that email already exists"), 409

    current_user.email = email
    db.session.commit()
    return jsonify(user=_me(current_user))
