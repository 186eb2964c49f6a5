"""
TMDb proxy blueprint — keeps the catalog credentials server-side.

List endpoints degrade to empty results when TMDb is unreachable or no
credentials are configured; single-title endpoints pass the upstream status
through so the client can tell "not found" from "TMDb is down".

URLs:
  GET /api/tmdb/search?query=                   – multi search
  GET /api/tmdb/trending                        – trending today (all types)
  GET /api/tmdb/popular                         – popular movies
  GET /api/tmdb/search/details?id=&media_type=  – details + images + credits
  GET /api/tmdb/title/<type>/<id>               – full title page payload
  GET /api/trending                             – weekly trending movies, normalised
"""
import logging

from flask import Blueprint, request, jsonify, current_app

from watchwise.utils import tmdb
from watchwise.utils.helpers import parse_int

log = logging.getLogger(__name__)

tmdb_bp = Blueprint("tmdb", __name__)

TRENDING_LIMIT = 20


def _upstream_error(exc: tmdb.TMDbError):
    status = exc.status_code or 502
    return jsonify(error=str(exc), status=status, detail=exc.detail), status


def _results_or_empty(fetch, *args, **kwargs):
    if not tmdb.has_credentials():
        return jsonify(results=[])
    try:
        return jsonify(results=fetch(*args, **kwargs))
    except tmdb.TMDbError as exc:
        log.warning("TMDb %s failed: %s", fetch.__name__, exc)
        return jsonify(results=[])


# ── Lists ─────────────────────────────────────────────────────────────────────

@tmdb_bp.route("/api/tmdb/search")
def search():
    query = (request.args.get("query") or "").strip()
    if not query:
        return jsonify(results=[])
    return _results_or_empty(tmdb.search_multi, query, page=parse_int(request.args.get("page"), 1))


@tmdb_bp.route("/api/tmdb/trending")
def trending():
    return _results_or_empty(tmdb.trending, "all", "day")


@tmdb_bp.route("/api/tmdb/popular")
def popular():
    return _results_or_empty(tmdb.popular_movies, page=parse_int(request.args.get("page"), 1))


# ── Single title ──────────────────────────────────────────────────────────────

@tmdb_bp.route("/api/tmdb/search/details")
def search_details():
    tmdb_id    = parse_int(request.args.get("id"))
    media_type = request.args.get("media_type")
    if not tmdb_id or not media_type:
        return jsonify(error="id and media_type are required"), 400
    if media_type not in tmdb.MEDIA_TYPES:
        return jsonify(error='Invalid type (must be "movie" or "tv")'), 400

    try:
        return jsonify(tmdb.get_details(media_type, tmdb_id))
    except tmdb.TMDbError as exc:
        log.warning("TMDb details %s/%s failed: %s", media_type, tmdb_id, exc)
        return _upstream_error(exc)


@tmdb_bp.route("/api/tmdb/title/<media_type>/<int:tmdb_id>")
def title(media_type, tmdb_id):
    if media_type not in tmdb.MEDIA_TYPES:
        return jsonify(error='Invalid type (must be "movie" or "tv")'), 400

    try:
        data = tmdb.get_title(media_type, tmdb_id)
    except tmdb.TMDbError as exc:
        log.warning("TMDb title %s/%s failed: %s", media_type, tmdb_id, exc)
        return _upstream_error(exc)

    data["providers_summary"] = tmdb.provider_names(
        data.get("watch/providers"), current_app.config["TMDB_REGION"],
    )
    return jsonify(data)


# ── Home page rail ────────────────────────────────────────────────────────────

@tmdb_bp.route("/api/trending")
def trending_movies():
    try:
        results = tmdb.trending("movie", "week")
        items = [
            {
                "tmdb_id":     int(r["id"]),
                "media_type":  "movie",
                "title":       r.get("title") or r.get("name") or "Untitled",
                "poster_path": r.get("poster_path"),
                "overview":    r.get("overview"),
            }
            for r in results
        ]
    except (tmdb.TMDbError, KeyError, TypeError, ValueError) as exc:
        log.warning("Weekly trending failed: %s", exc)
        return jsonify([])
    return jsonify(items[:TRENDING_LIMIT])
