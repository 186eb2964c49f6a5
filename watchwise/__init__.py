"""
WatchWise – Flask application factory.
Social movie & TV tracker: watchlist, ratings, reviews and a community feed.
"""
import logging
import os

from flask import Flask, jsonify
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from watchwise.config import config
from watchwise.extensions import db, login_manager, csrf, limiter, migrate

log = logging.getLogger(__name__)


def configure_logging(level_name: str, debug: bool = False) -> None:
    level = getattr(logging, (level_name or "INFO").upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("watchwise").setLevel(level)
    # quieter werkzeug when not debugging
    logging.getLogger("werkzeug").setLevel(logging.INFO if debug else logging.WARNING)


def create_app(config_name: str = "default") -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name])
    configure_logging(app.config.get("LOG_LEVEL"), debug=app.debug)

    # Ensure instance directory exists (SQLite lives here)
    os.makedirs(app.instance_path, exist_ok=True)

    # ── Initialise extensions ────────────────────────────────────────────────
    db.init_app(app)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)
    migrate.init_app(app, db)

    if app.config.get("TALISMAN_ENABLED"):
        from flask_talisman import Talisman
        Talisman(app, **app.config.get("TALISMAN_CONFIG", {}))

    # ── Session user ─────────────────────────────────────────────────────────
    @login_manager.user_loader
    def load_user(user_id):
        from watchwise.models.user import User
        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify(error="Unauthorized"), 401

    # ── Register blueprints ──────────────────────────────────────────────────
    from watchwise.blueprints.auth import auth_bp
    from watchwise.blueprints.feed import feed_bp
    from watchwise.blueprints.social import social_bp
    from watchwise.blueprints.library import library_bp
    from watchwise.blueprints.importer import import_bp
    from watchwise.blueprints.tmdb import tmdb_bp
    from watchwise.blueprints.recommendations import recs_bp
    from watchwise.blueprints.account import account_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(feed_bp)
    app.register_blueprint(social_bp)
    app.register_blueprint(library_bp)
    app.register_blueprint(import_bp)
    app.register_blueprint(tmdb_bp)
    app.register_blueprint(recs_bp)
    app.register_blueprint(account_bp)

    # ── Error handlers ───────────────────────────────────────────────────────
    @app.errorhandler(HTTPException)
    def http_error(e):
        return jsonify(error=e.description or e.name, status=e.code), e.code

    @app.errorhandler(IntegrityError)
    def conflict(e):
        # Lost an upsert race: the unique constraint already holds the row
        db.session.rollback()
        log.warning("Integrity error: %s", e.orig)
        return jsonify(error="Conflict: that record already exists", status=409), 409

    @app.errorhandler(500)
    def internal_error(e):
        db.session.rollback()
        log.error("Unhandled error: %s", getattr(e, "original_exception", e))
        return jsonify(error="Internal server error", status=500), 500

    # ── Database ─────────────────────────────────────────────────────────────
    with app.app_context():
        # Register all models with SQLAlchemy before create_all().
        import importlib
        importlib.import_module("watchwise.models")
        db.create_all()

    return app
