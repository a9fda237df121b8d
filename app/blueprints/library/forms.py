from wtforms import BooleanField, IntegerField, StringField, TextAreaField
from wtforms.validators import AnyOf, DataRequired, Length, Optional

from ...models.qualifier import QUALIFIER_TYPES
from ...utils.forms import ApiForm


class ModuleForm(ApiForm):
    code = StringField(validators=[DataRequired(message="Le code et le nom sont requis."), Length(max=20)])
    name = StringField(validators=[DataRequired(message="Le code et le nom sont requis."), Length(max=200)])
    description = TextAreaField(validators=[Optional()])
    parent_id = IntegerField(validators=[Optional()])
    icon = StringField(validators=[Optional(), Length(max=50)])
    color = StringField(validators=[Optional(), Length(max=20)])
    sort_order = IntegerField(default=0, validators=[Optional()])
    is_active = BooleanField(default=True)


class CompetencyForm(ApiForm):
    module_id = IntegerField(validators=[DataRequired(message="module_id et nom sont requis.")])
    name = StringField(validators=[DataRequired(message="module_id et nom sont requis."), Length(max=255)])
    description = TextAreaField(validators=[Optional()])
    external_id = StringField(validators=[Optional(), Length(max=64)])
    sort_order = IntegerField(default=0, validators=[Optional()])
    is_active = BooleanField(default=True)


class QualifierForm(ApiForm):
    name = StringField(validators=[DataRequired(message="Le nom et le type sont requis."), Length(max=200)])
    qualifier_type = StringField(validators=[DataRequired(message="Le nom et le type sont requis."),
                                             AnyOf(QUALIFIER_TYPES, message="Type de qualificateur invalide.")])
    sort_order = IntegerField(default=0, validators=[Optional()])
    is_active = BooleanField(default=True)


class QualifierOptionForm(ApiForm):
    qualifier_id = IntegerField(validators=[DataRequired(message="qualifier_id, label et value sont requis.")])
    label = StringField(validators=[DataRequired(message="qualifier_id, label et value sont requis."), Length(max=200)])
    value = IntegerField(validators=[Optional()])
    icon = StringField(validators=[Optional(), Length(max=50)])
    color = StringField(validators=[Optional(), Length(max=20)])
    sort_order = IntegerField(default=0, validators=[Optional()])
