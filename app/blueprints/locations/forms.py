from wtforms import BooleanField, StringField
from wtforms.validators import DataRequired, Length, Optional

from ...utils.forms import ApiForm


class LocationForm(ApiForm):
    name = StringField(validators=[DataRequired(message="Nom requis"), Length(max=200)])
    address = StringField(validators=[Optional(), Length(max=255)])
    city = StringField(validators=[Optional(), Length(max=120)])
    postal_code = StringField(validators=[Optional(), Length(max=20)])
    is_active = BooleanField(default=True)
