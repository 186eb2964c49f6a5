"""
Miscellaneous helpers used across models, services and blueprints.
"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp — SQLite drops tzinfo, so we store naive UTC everywhere."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def relative_time(dt: datetime) -> str:
    diff = utcnow() - dt
    s    = int(diff.total_seconds())
    if s < 60:      return "just now"
    if s < 3600:    return f"{s // 60}m ago"
    if s < 86400:   return f"{s // 3600}h ago"
    if s < 604800:  return f"{s // 86400}d ago"
    return dt.strftime("%b %d")


def parse_int(value, default: int | None = None) -> int | None:
    """int(value), or *default* for None / garbage. Booleans are rejected."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def first_error(form) -> str:
    """First validation message on a WTForms form, for a one-line JSON error."""
    for field, messages in form.errors.items():
        if messages:
            return f"{field}: {messages[0]}"
    return "Invalid input"
