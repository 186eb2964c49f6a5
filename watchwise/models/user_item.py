import enum
from watchwise.extensions import db
from watchwise.utils.helpers import utcnow


class ItemStatus(enum.Enum):
    WATCHLIST = "watchlist"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, value: str) -> "ItemStatus":
        """ItemStatus from its string value; raises ValueError on anything else."""
        return cls((value or "").strip().lower())


class UserItem(db.Model):
    """One user's relationship to one title: the library entry and its review.

    Unique per (user_id, item_id); writes go through item_service.upsert_user_item
    so a second identical write updates the row instead of adding one.
    Also the unit of feed activity — reactions and comments hang off it.
    """
    __tablename__ = "user_items"
    __table_args__ = (
        db.UniqueConstraint("user_id", "item_id", name="uq_user_item"),
    )

    id         = db.Column(db.Integer, primary_key=True)
    user_id    = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id    = db.Column(
        db.Integer, db.ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status     = db.Column(db.Enum(ItemStatus), default=ItemStatus.WATCHLIST, nullable=False)
    favorite   = db.Column(db.Boolean, default=False, nullable=False)
    rating     = db.Column(db.Integer, nullable=True)      # 0–10
    review     = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

    # ── Relationships ────────────────────────────────────────────────────────
    user      = db.relationship("User", back_populates="library")
    item      = db.relationship("Item", back_populates="user_items")
    reactions = db.relationship("Reaction", back_populates="user_item",
                                cascade="all, delete-orphan")
    comments  = db.relationship("Comment", back_populates="user_item",
                                cascade="all, delete-orphan",
                                order_by="Comment.id")

    def __repr__(self) -> str:
        return f"<UserItem user={self.user_id} item={self.item_id} [{self.status.value}]>"
