from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, SubmitField
from wtforms.validators import DataRequired, Email, EqualTo, Length

class SignupForm(FlaskForm):
    org_name = StringField("Entreprise", validators=[DataRequired(), Length(max=120)])
    first_name = StringField("Prénom", validators=[DataRequired(message="Prénom requis"), Length(max=120)])
    last_name = StringField("Nom", validators=[DataRequired(message="Nom requis"), Length(max=120)])
    email = StringField("Email administrateur", validators=[DataRequired(), Email(message="Email invalide")])
    password = PasswordField("Mot de passe", validators=[DataRequired(), Length(min=8)])
    confirm = PasswordField("Mot de passe (confirmation)", validators=[DataRequired(), EqualTo('password')])
    submit = SubmitField("Créer l'administrateur")

class LoginForm(FlaskForm):
    email = StringField("Email", validators=[DataRequired(), Email(message="Email invalide")])
    password = PasswordField("Mot de passe", validators=[DataRequired()])
    submit = SubmitField("Connexion")

class ResetPasswordForm(FlaskForm):
    password = PasswordField("Nouveau mot de passe", validators=[DataRequired(), Length(min=8)])
    confirm = PasswordField("Confirmation", validators=[DataRequired(), EqualTo('password')])
    submit = SubmitField("Enregistrer")
