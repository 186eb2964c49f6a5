"""
Feed service — the community activity query and its social aggregates.

Activity is UserItem rows, newest updated_at first, paginated with an opaque
cursor (the previous page's oldest updated_at). Mutes, hidden items and
private profiles are filtered inside the query, so a page comes back short
only when the feed is exhausted and never holds more than the limit.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func, or_, select

from watchwise.extensions import db
from watchwise.models.profile import Profile
from watchwise.models.social import Reaction, Comment
from watchwise.models.suppression import Hidden, MutedUser
from watchwise.models.user_item import UserItem
from watchwise.utils.helpers import parse_int, relative_time, to_naive_utc
from watchwise.utils.item_service import serialize_item

log = logging.getLogger(__name__)


@dataclass
class FeedPage:
    rows: list = field(default_factory=list)
    next_cursor: str | None = None
    has_more: bool = False


# ── Request parsing ───────────────────────────────────────────────────────────

def clamp_limit(raw, default: int = 20, maximum: int = 50) -> int:
    """Page size from a query-string value: garbage or < 1 → default, capped at maximum."""
    n = parse_int(raw, default)
    if n < 1:
        n = default
    return min(n, maximum)


def parse_cursor(raw: str | None) -> datetime | None:
    """
    ISO-8601 cursor → naive UTC datetime. A trailing "Z" is accepted.

    Raises:
        ValueError: malformed cursor.
    """
    if not raw:
        return None
    return to_naive_utc(datetime.fromisoformat(raw.strip().replace("Z", "+00:00")))


# ── Queries ───────────────────────────────────────────────────────────────────

def activity_query(viewer_id: int | None = None, reviews_only: bool = False, suppress: bool = True):
    """UserItem query with privacy and (for signed-in viewers) suppression applied."""
    query = (
        UserItem.query
        .outerjoin(Profile, Profile.user_id == UserItem.user_id)
        .filter(or_(
            Profile.user_id.is_(None),             # profile not created yet → public default
            Profile.privacy_public.is_(True),
            UserItem.user_id == viewer_id,
        ))
    )
    if reviews_only:
        query = query.filter(UserItem.review.isnot(None))

    if suppress and viewer_id is not None:
        muted  = select(MutedUser.muted_user_id).where(MutedUser.user_id == viewer_id)
        hidden = select(Hidden.item_id).where(Hidden.user_id == viewer_id)
        query = query.filter(
            UserItem.user_id.notin_(muted),
            UserItem.item_id.notin_(hidden),
        )
    return query


def visible_activity(user_item_id: int, viewer_id: int | None = None) -> UserItem | None:
    """The UserItem if *viewer_id* may see it: public author, or the viewer's own row."""
    return activity_query(viewer_id, suppress=False).filter(UserItem.id == user_item_id).first()


def feed_page(viewer_id: int | None, cursor: datetime | None = None, limit: int = 20,
              reviews_only: bool = False) -> FeedPage:
    query = activity_query(viewer_id, reviews_only)
    if cursor is not None:
        query = query.filter(UserItem.updated_at < cursor)

    rows = (
        query
        .order_by(UserItem.updated_at.desc(), UserItem.id.desc())
        .limit(limit + 1)
        .all()
    )
    has_more = len(rows) > limit
    rows     = rows[:limit]
    next_cursor = rows[-1].updated_at.isoformat() if has_more and rows else None
    return FeedPage(rows=rows, next_cursor=next_cursor, has_more=has_more)


def reaction_counts(user_item_ids: list[int]) -> dict[int, dict[str, int]]:
    """{user_item_id: {emoji: count}} for the given activity rows."""
    if not user_item_ids:
        return {}
    counts: dict[int, dict[str, int]] = {}
    rows = (
        db.session.query(Reaction.user_item_id, Reaction.emoji, func.count(Reaction.id))
        .filter(Reaction.user_item_id.in_(user_item_ids))
        .group_by(Reaction.user_item_id, Reaction.emoji)
        .all()
    )
    for ui_id, emoji, n in rows:
        counts.setdefault(ui_id, {})[emoji] = n
    return counts


def my_reactions(viewer_id: int | None, user_item_ids: list[int]) -> dict[int, set[str]]:
    if viewer_id is None or not user_item_ids:
        return {}
    mine: dict[int, set[str]] = {}
    for ui_id, emoji in (
        db.session.query(Reaction.user_item_id, Reaction.emoji)
        .filter(Reaction.user_id == viewer_id, Reaction.user_item_id.in_(user_item_ids))
        .all()
    ):
        mine.setdefault(ui_id, set()).add(emoji)
    return mine


def comment_counts(user_item_ids: list[int]) -> dict[int, int]:
    if not user_item_ids:
        return {}
    return dict(
        db.session.query(Comment.user_item_id, func.count(Comment.id))
        .filter(Comment.user_item_id.in_(user_item_ids))
        .group_by(Comment.user_item_id)
        .all()
    )


# ── Serialisers ───────────────────────────────────────────────────────────────

def serialize_author(user) -> dict:
    profile = user.profile if user is not None else None
    if profile is None:
        return {
            "id":         user.id if user is not None else None,
            "username":   user.default_username if user is not None else "deleted",
            "avatar_url": None,
        }
    return {"id": user.id, "username": profile.username, "avatar_url": profile.avatar_url}


def serialize_comment(comment: Comment, viewer_id: int | None) -> dict:
    return {
        "id":            comment.id,
        "user_item_id":  comment.user_item_id,
        "content":       comment.content,
        "created_at":    comment.created_at.isoformat(),
        "relative_time": relative_time(comment.created_at),
        "author":        serialize_author(comment.author),
        "is_mine":       comment.user_id == viewer_id,
    }


def serialize_activity(rows: list, viewer_id: int | None) -> list[dict]:
    """Feed rows with item, author, reaction counts and comment counts attached."""
    ids       = [ui.id for ui in rows]
    reactions = reaction_counts(ids)
    mine      = my_reactions(viewer_id, ids)
    comments  = comment_counts(ids)

    return [
        {
            "id":            ui.id,
            "user_id":       ui.user_id,
            "status":        ui.status.value,
            "favorite":      ui.favorite,
            "rating":        ui.rating,
            "review":        ui.review,
            "updated_at":    ui.updated_at.isoformat(),
            "relative_time": relative_time(ui.updated_at),
            "item":          serialize_item(ui.item),
            "profile":       serialize_author(ui.user),
            "reactions":     reactions.get(ui.id, {}),
            "my_reactions":  sorted(mine.get(ui.id, set())),
            "comment_count": comments.get(ui.id, 0),
            "is_mine":       ui.user_id == viewer_id,
        }
        for ui in rows
    ]


def title_reviews(item, viewer_id: int | None, limit: int = 50) -> list[dict]:
    """Reviews of one title (newest first) with reactions and full comment threads."""
    rows = (
        activity_query(viewer_id, reviews_only=True)
        .filter(UserItem.item_id == item.id)
        .order_by(UserItem.updated_at.desc(), UserItem.id.desc())
        .limit(limit)
        .all()
    )
    data = serialize_activity(rows, viewer_id)
    for entry, ui in zip(data, rows):
        entry["comments"] = [serialize_comment(c, viewer_id) for c in ui.comments]
    return data
