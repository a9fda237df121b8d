from wtforms import IntegerField, PasswordField, StringField
from wtforms.validators import AnyOf, DataRequired, Email, Length, Optional

from ...models.profile import ROLES
from ...utils.forms import ApiForm


class UserCreateForm(ApiForm):
    email = StringField(validators=[DataRequired(message="Email invalide"), Email(message="Email invalide")])
    password = PasswordField(validators=[Optional(), Length(min=8, message="Mot de passe trop court (8 caractères minimum)")])
    first_name = StringField(validators=[DataRequired(message="Prénom requis"), Length(max=120)])
    last_name = StringField(validators=[DataRequired(message="Nom requis"), Length(max=120)])
    role = StringField(default="worker", validators=[Optional(), AnyOf(ROLES, message="Rôle invalide")])
    job_title = StringField(validators=[Optional(), Length(max=200)])
    manager_id = IntegerField(validators=[Optional()])
    location_id = IntegerField(validators=[Optional()])
