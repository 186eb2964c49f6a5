import re

from flask_login import UserMixin
from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError, InvalidHashError, VerificationError
from watchwise.extensions import db
from watchwise.utils.helpers import utcnow

_ph = PasswordHasher()
_USERNAME_JUNK = re.compile(r"[^\w.\-]")


class User(db.Model, UserMixin):
    """Authentication identity. Public-facing data lives on Profile."""
    __tablename__ = "users"

    id            = db.Column(db.Integer, primary_key=True)
    email         = db.Column(db.String(254), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(512), nullable=False)
    is_active     = db.Column(db.Boolean, default=True, nullable=False)
    created_at    = db.Column(db.DateTime, default=utcnow, nullable=False)
    last_login    = db.Column(db.DateTime, nullable=True)

    profile = db.relationship("Profile", back_populates="user", uselist=False)
    library = db.relationship("UserItem", back_populates="user", lazy="dynamic")

    # ── Password helpers ────────────────────────────────────────────────────
    def set_password(self, password: str) -> None:
        self.password_hash = _ph.hash(password)

    def check_password(self, password: str) -> bool:
        try:
            return _ph.verify(self.password_hash, password)
        except (VerifyMismatchError, InvalidHashError, VerificationError):
            return False

    @property
    def default_username(self) -> str:
        local = _USERNAME_JUNK.sub("", (self.email or "").split("@")[0]) or "user"
        return f"{local[:20]}_{self.id}"

    # Flask-Login requires this property
    @property
    def active(self) -> bool:
        return self.is_active

    def __repr__(self) -> str:
        return f"<User {self.email}>"
