from watchwise.extensions import db
from watchwise.utils.helpers import utcnow


class Profile(db.Model):
    """Public face of a user: username, avatar and privacy flag.

    Created lazily (see account_service.ensure_profile) the first time an
    authenticated request needs it, so a User may exist without one.
    """
    __tablename__ = "profiles"

    user_id        = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    username       = db.Column(db.String(64), unique=True, nullable=False, index=True)
    avatar_url     = db.Column(db.String(500), nullable=True)
    privacy_public = db.Column(db.Boolean, default=True, nullable=False)
    created_at     = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at     = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = db.relationship("User", back_populates="profile")

    def __repr__(self) -> str:
        return f"<Profile {self.username}>"
