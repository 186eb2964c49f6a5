from watchwise.extensions import db
from watchwise.utils.helpers import utcnow


class Item(db.Model):
    """Cached TMDb title.

    One row per (tmdb_id, media_type). Rows imported without a catalog id keep
    tmdb_id NULL until a later lookup by title adopts them.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.UniqueConstraint("tmdb_id", "media_type", name="uq_item_catalog"),
    )

    id           = db.Column(db.Integer, primary_key=True)
    tmdb_id      = db.Column(db.Integer, nullable=True, index=True)
    media_type   = db.Column(db.String(10), nullable=False)   # movie | tv
    title        = db.Column(db.String(300), nullable=False, index=True)
    overview     = db.Column(db.Text, nullable=True)
    poster_path  = db.Column(db.String(300), nullable=True)
    release_date = db.Column(db.String(10), nullable=True)    # YYYY-MM-DD as TMDb sends it
    genres       = db.Column(db.JSON, nullable=True)          # list of TMDb genre ids
    created_at   = db.Column(db.DateTime, default=utcnow, nullable=False)

    user_items = db.relationship("UserItem", back_populates="item", lazy="dynamic")

    @property
    def year(self) -> int | None:
        if self.release_date and self.release_date[:4].isdigit():
            return int(self.release_date[:4])
        return None

    def __repr__(self) -> str:
        return f"<Item {self.media_type}:{self.tmdb_id} {self.title!r}>"
