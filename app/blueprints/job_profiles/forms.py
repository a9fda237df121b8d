from wtforms import BooleanField, StringField, TextAreaField
from wtforms.validators import DataRequired, Length, Optional

from ...utils.forms import ApiForm


class JobProfileForm(ApiForm):
    name = StringField(validators=[DataRequired(message="Le nom est requis."), Length(max=200)])
    description = TextAreaField(validators=[Optional()])
    is_active = BooleanField(default=True)
