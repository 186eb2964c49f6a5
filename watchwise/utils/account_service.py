"""
Account service — lazy profile creation, username rules and account deletion.

Profiles are not created at registration time: the first authenticated
request that needs one calls ensure_profile(), which picks a default
username of the form <email local part>_<user id>.
"""
import logging
import re

from sqlalchemy import func, or_, select

from watchwise.extensions import db
from watchwise.models.profile import Profile
from watchwise.models.social import Reaction, Comment
from watchwise.models.suppression import Hidden, MutedUser
from watchwise.models.user_item import UserItem

log = logging.getLogger(__name__)

DELETE_PHRASE = "DELETE MY ACCOUNT"
USERNAME_RE = re.compile(r"^[\w.\-]{3,32}$")


def username_taken(username: str, exclude_user_id: int | None = None) -> bool:
    """Case-insensitive uniqueness check."""
    query = Profile.query.filter(func.lower(Profile.username) == username.lower())
    if exclude_user_id is not None:
        query = query.filter(Profile.user_id != exclude_user_id)
    return db.session.query(query.exists()).scalar()


def ensure_profile(user, username: str | None = None) -> Profile:
    """Return the user's Profile, creating (and committing) it if absent."""
    if user.profile is not None:
        return user.profile

    base = username if username and USERNAME_RE.match(username) else user.default_username
    candidate, n = base, 1
    while username_taken(candidate):
        n += 1
        suffix = str(n)
        candidate = f"{base[:32 - len(suffix)]}{suffix}"
    if not USERNAME_RE.match(candidate):
        raise ValueError(f"Cannot derive a valid username for user {user.id}")

    profile = Profile(user_id=user.id, username=candidate, privacy_public=True)
    db.session.add(profile)
    db.session.commit()
    log.info("Created profile %r for user %s", candidate, user.id)
    return profile


def delete_account(user) -> dict:
    """
    Remove every row the user owns, then the user identity itself.

    Owned rows (reactions, comments, suppression entries in both directions,
    library entries plus the reactions/comments other people left on them,
    and the profile) are deleted and committed first; the User row goes in a
    second commit, so a failure part-way never leaves an identity-less
    account with data still attached.

    Returns a dict of deleted row counts per table.
    """
    uid = user.id
    own_entries = select(UserItem.id).where(UserItem.user_id == uid)

    counts = {
        "reactions": Reaction.query.filter(
            or_(Reaction.user_id == uid, Reaction.user_item_id.in_(own_entries))
        ).delete(synchronize_session=False),
        "comments": Comment.query.filter(
            or_(Comment.user_id == uid, Comment.user_item_id.in_(own_entries))
        ).delete(synchronize_session=False),
        "hidden": Hidden.query.filter(Hidden.user_id == uid).delete(synchronize_session=False),
        "muted_users": MutedUser.query.filter(
            or_(MutedUser.user_id == uid, MutedUser.muted_user_id == uid)
        ).delete(synchronize_session=False),
        "user_items": UserItem.query.filter(UserItem.user_id == uid).delete(synchronize_session=False),
        "profiles": Profile.query.filter(Profile.user_id == uid).delete(synchronize_session=False),
    }
    db.session.commit()

    db.session.delete(user)
    db.session.commit()
    log.info("Deleted account %s: %s", uid, counts)
    return counts


def serialize_profile(profile: Profile) -> dict:
    return {
        "user_id":        profile.user_id,
        "username":       profile.username,
        "avatar_url":     profile.avatar_url,
        "privacy_public": profile.privacy_public,
        "created_at":     profile.created_at.isoformat(),
    }
