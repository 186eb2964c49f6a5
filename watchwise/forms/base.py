from flask_wtf import FlaskForm


class ApiForm(FlaskForm):
    """FlaskForm fed from JSON or multipart bodies.

    The per-form hidden token is switched off: CSRFProtect already checks the
    X-CSRFToken header on every unsafe request app-wide.
    """
    class Meta:
        csrf = False
