"""
Import blueprint — bring a watch history in from JSON or a CSV export.

URLs:
  POST /api/import             – {"items": [...]} already-normalised rows
  POST /api/import/csv         – multipart CSV upload, one response at the end
  POST /api/import/csv-stream  – multipart CSV upload, NDJSON progress stream
"""
import logging
from flask import Blueprint, request, jsonify, current_app, Response, stream_with_context
from flask_login import login_required, current_user

from watchwise.extensions import limiter
from watchwise.forms.importer import CsvImportForm
from watchwise.utils.csv_import import parse_csv, validate_payload, match_row, match_rows
from watchwise.utils.helpers import first_error
from watchwise.utils.item_service import import_rows, stream_import, ndjson_event

log = logging.getLogger(__name__)

import_bp = Blueprint("importer", __name__)


def _upload_text(form: CsvImportForm) -> str:
    return form.file.data.read().decode("utf-8", errors="replace")


def _parse(text: str, form: CsvImportForm) -> list:
    """Parse the uploaded export. Raises ValueError on an unknown source."""
    rows = parse_csv(text, form.source.data)
    if form.only_watchlist.data:
        rows = [r for r in rows if r.status == "watchlist"]
    return rows


def _too_many(rows: list) -> str | None:
    cap = current_app.config["IMPORT_MAX_ROWS"]
    if len(rows) > cap:
        return f"Imports are limited to {cap} rows per request"
    return None


# ── JSON import ───────────────────────────────────────────────────────────────

@import_bp.route("/api/import", methods=["POST"])
@login_required
@limiter.limit("10 per minute")
def import_json():
    rows, errors = validate_payload(request.get_json(silent=True))
    if errors:
        return jsonify(error="Invalid import payload", errors=errors), 400
    too_many = _too_many(rows)
    if too_many:
        return jsonify(error=too_many), 400

    result = import_rows(current_user.id, rows)
    return jsonify(result.to_dict())


# ── CSV import ────────────────────────────────────────────────────────────────

@import_bp.route("/api/import/csv", methods=["POST"])
@login_required
@limiter.limit("10 per minute")
def import_csv():
    form = CsvImportForm()
    if not form.validate_on_submit():
        return jsonify(error=first_error(form), errors=form.errors), 400

    try:
        rows = _parse(_upload_text(form), form)
    except ValueError as exc:
        return jsonify(error=str(exc)), 400
    too_many = _too_many(rows)
    if too_many:
        return jsonify(error=too_many), 400

    if form.match.data:
        rows = match_rows(rows)
    result = import_rows(current_user.id, rows)
    return jsonify(parsed=len(rows), **result.to_dict())


@import_bp.route("/api/import/csv-stream", methods=["POST"])
@login_required
@limiter.limit("10 per minute")
def import_csv_stream():
    """Streaming variant of import_csv — yields NDJSON progress events."""
    form = CsvImportForm()
    if not form.validate_on_submit():
        def _err():
            yield ndjson_event(type="error", message=first_error(form))
        return Response(stream_with_context(_err()), content_type="application/x-ndjson")

    user_id = current_user.id
    text    = _upload_text(form)
    match   = match_row if form.match.data else None

    def _gen():
        yield ndjson_event(type="parsing")
        try:
            rows = _parse(text, form)
            too_many = _too_many(rows)
            if too_many:
                yield ndjson_event(type="error", message=too_many)
                return
            yield ndjson_event(type="parsed", total=len(rows))
            yield from stream_import(user_id, rows, match=match)
        except Exception as exc:
            log.exception("Streaming CSV import failed for user %s", user_id)
            yield ndjson_event(type="error", message=str(exc))

    resp = Response(stream_with_context(_gen()), content_type="application/x-ndjson")
    resp.headers["X-Accel-Buffering"] = "no"
    return resp
