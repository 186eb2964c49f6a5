from wtforms import StringField, PasswordField, EmailField, BooleanField
from wtforms.validators import DataRequired, Length, Email, Optional, Regexp

from watchwise.forms.base import ApiForm


class RegisterForm(ApiForm):
    email = EmailField(
        "Email Address",
        validators=[DataRequired(), Email(), Length(5, 254)],
    )
    password = PasswordField(
        "Password",
        validators=[
            DataRequired(),
            Length(8, 128, message="Password must be at least 8 characters."),
        ],
    )
    username = StringField(
        "Username",
        validators=[
            Optional(),
            Length(3, 32),
            Regexp(r"^[\w.\-]+$", message="Letters, digits, '.', '-' and '_' only."),
        ],
    )


class LoginForm(ApiForm):
    email    = EmailField("Email Address", validators=[DataRequired(), Email()])
    password = PasswordField("Password", validators=[DataRequired()])
    remember = BooleanField("Remember me")


class PasswordForm(ApiForm):
    current_password = PasswordField("Current Password", validators=[DataRequired()])
    new_password     = PasswordField(
        "New Password",
        validators=[
            DataRequired(),
            Length(8, 128, message="Password must be at least 8 characters."),
        ],
    )


class EmailForm(ApiForm):
    email = EmailField(
        "New Email Address",
        validators=[DataRequired(), Email(), Length(5, 254)],
    )
