"""Per-viewer feed suppression lists. Only the feed query reads these."""
from watchwise.extensions import db
from watchwise.utils.helpers import utcnow


class Hidden(db.Model):
    __tablename__ = "hidden"
    __table_args__ = (db.UniqueConstraint("user_id", "item_id", name="uq_hidden"),)

    id         = db.Column(db.Integer, primary_key=True)
    user_id    = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id    = db.Column(db.Integer, db.ForeignKey("items.id", ondelete="CASCADE"), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)


class MutedUser(db.Model):
    __tablename__ = "muted_users"
    __table_args__ = (db.UniqueConstraint("user_id", "muted_user_id", name="uq_muted_user"),)

    id            = db.Column(db.Integer, primary_key=True)
    user_id       = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    muted_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at    = db.Column(db.DateTime, default=utcnow, nullable=False)

    muted_user = db.relationship("User", foreign_keys=[muted_user_id])
