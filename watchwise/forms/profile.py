from wtforms import StringField, BooleanField
from wtforms.validators import Length, Optional, Regexp, URL

from watchwise.forms.base import ApiForm


class ProfileForm(ApiForm):
    """PATCH body for /api/profile. Every field is optional; absent keys are left alone."""
    username = StringField(
        "Username",
        validators=[
            Optional(),
            Length(3, 32, message="Username must be 3–32 characters."),
            Regexp(r"^[\w.\-]+$", message="Letters, digits, '.', '-' and '_' only."),
        ],
    )
    avatar_url = StringField(
        "Avatar URL",
        validators=[Optional(), URL(require_tld=False), Length(max=500)],
    )
    privacy_public = BooleanField("Public profile")
