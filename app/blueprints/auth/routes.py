from flask import abort, current_app, flash, redirect, render_template, url_for
from flask_login import current_user, login_required, login_user, logout_user
from . import bp
from ...extensions import db
from .forms import LoginForm, ResetPasswordForm, SignupForm
from ...models.organization import Organization
from ...models.user import User
from ...services.accounts import create_account, email_taken, load_reset_token


@bp.route("/login", methods=["GET", "POST"])
def login():
    if current_user.is_authenticated:
        return redirect(url_for("pages.index"))
    form = LoginForm()
    if form.validate_on_submit():
        user = User.query.filter(db.func.lower(User.email) == form.email.data.strip().lower()).first()
        if user and user.check_password(form.password.data):
            if not user.is_active:
                flash("Ce compte est désactivé.", "danger")
            else:
                login_user(user)
                current_app.logger.info("login: user %s", user.id)
                return redirect(url_for("pages.index"))
        else:
            flash("Identifiants invalides", "danger")
    return render_template("auth/login.html", form=form)


@bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return redirect(url_for("auth.login"))


@bp.route("/signup", methods=["GET", "POST"])
def signup():
    """Bootstrap only: the very first account creates its organization as super_admin."""
    if User.query.first() is not None:
        abort(403)

    form = SignupForm()
    if form.validate_on_submit():
        if Organization.query.filter_by(name=form.org_name.data.strip()).first() or email_taken(form.email.data):
            flash("Cette organisation ou cet email existe déjà", "danger")
        else:
            org = Organization(name=form.org_name.data.strip())
            db.session.add(org)
            db.session.flush()
            create_account(org.id, form.email.data, form.first_name.data, form.last_name.data,
                           role="super_admin", password=form.password.data)
            db.session.commit()
            current_app.logger.info("signup: organization %s created", org.id)
            flash("Compte administrateur créé. Connectez-vous.", "success")
            return redirect(url_for("auth.login"))
    return render_template("auth/signup.html", form=form)


@bp.route("/reset/<token>", methods=["GET", "POST"])
def reset_password(token):
    user = load_reset_token(token)
    if user is None:
        flash("Lien invalide ou expiré.", "danger")
        return redirect(url_for("auth.login"))
    form = ResetPasswordForm()
    if form.validate_on_submit():
        user.set_password(form.password.data)
        db.session.commit()
        flash("Mot de passe enregistré. Connectez-vous.", "success")
        return redirect(url_for("auth.login"))
    return render_template("auth/reset.html", form=form)
