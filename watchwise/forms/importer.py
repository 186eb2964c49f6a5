from flask_wtf.file import FileField, FileRequired, FileAllowed
from wtforms import SelectField, BooleanField
from wtforms.validators import DataRequired

from watchwise.forms.base import ApiForm


class CsvImportForm(ApiForm):
    file = FileField(
        "Export file",
        validators=[
            FileRequired(message="Choose a CSV export to import."),
            FileAllowed(["csv"], message="Only .csv exports are supported."),
        ],
    )
    source = SelectField(
        "Exported from",
        choices=[("letterboxd", "Letterboxd"), ("trakt", "Trakt")],
        validators=[DataRequired()],
    )
    only_watchlist = BooleanField("Import only watchlist rows")
    match          = BooleanField("Match titles against TMDb")
