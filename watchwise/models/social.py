"""Feed interaction models — Reaction, Comment. Both are append-only."""
from watchwise.extensions import db
from watchwise.utils.helpers import utcnow


class Reaction(db.Model):
    # No uniqueness on (user, user_item, emoji): repeat reactions are kept
    __tablename__ = "reactions"

    id           = db.Column(db.Integer, primary_key=True)
    user_id      = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    user_item_id = db.Column(db.Integer, db.ForeignKey("user_items.id", ondelete="CASCADE"), nullable=False, index=True)
    emoji        = db.Column(db.String(8), nullable=False)
    created_at   = db.Column(db.DateTime, default=utcnow, nullable=False)

    user_item = db.relationship("UserItem", back_populates="reactions")


class Comment(db.Model):
    __tablename__ = "comments"

    id           = db.Column(db.Integer, primary_key=True)
    user_id      = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    user_item_id = db.Column(db.Integer, db.ForeignKey("user_items.id", ondelete="CASCADE"), nullable=False, index=True)
    content      = db.Column(db.String(1000), nullable=False)
    created_at   = db.Column(db.DateTime, default=utcnow, nullable=False)

    user_item = db.relationship("UserItem", back_populates="comments")
    author    = db.relationship("User", foreign_keys=[user_id])
