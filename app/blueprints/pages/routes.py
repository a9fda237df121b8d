from flask import redirect, render_template, request, url_for
from flask_login import current_user
from . import bp
from ...models.profile import ROLE_LABELS
from ...services.statistics import worker_dashboard, workers_directory
from ...utils.decorators import evaluator_required, roles_required


@bp.get("/")
def index():
    if not current_user.is_authenticated:
        return redirect(url_for("auth.login"))
    if current_user.role == "worker":
        return redirect(url_for("pages.my_profile"))
    return redirect(url_for("pages.workers"))


@bp.get("/my-profile")
@roles_required()
def my_profile():
    profile = current_user.profile
    return render_template("pages/my_profile.html", profile=profile,
                           role_label=ROLE_LABELS.get(profile.role, profile.role),
                           dashboard=worker_dashboard(profile))


@bp.get("/workers")
@evaluator_required
def workers():
    viewer = current_user.profile
    rows = workers_directory(viewer, search=request.args.get("q"),
                             my_team=request.args.get("my_team") == "1")
    return render_template("pages/workers.html", workers=rows)
