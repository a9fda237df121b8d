import io

from flask import current_app, jsonify, request, send_file
from flask_login import current_user
from . import bp
from .forms import UserCreateForm
from ...extensions import db, rq
from ...models.location import Location
from ...models.profile import Profile
from ...services import storage
from ...services.accounts import create_account, update_profile, upload_avatar
from ...services.spreadsheet import read_rows, template_csv
from ...services.user_import import TEMPLATE_EXAMPLE, TEMPLATE_HEADERS, import_users
from ...utils.decorators import admin_required, api_login_required
from ...utils.errors import ServiceError, get_scoped
from ...utils.forms import json_form, json_payload, validate_or_raise
from ...utils.rate_limit import rate_limited


@bp.get("/users")
@admin_required
def list_users():
    profiles = (Profile.query.filter_by(org_id=current_user.org_id)
                .order_by(Profile.last_name, Profile.first_name).all())
    return jsonify({"users": [p.to_dict() for p in profiles]})


@bp.post("/users")
@admin_required
def create_user():
    form = validate_or_raise(json_form(UserCreateForm))
    org_id = current_user.org_id
    if form.manager_id.data:
        get_scoped(Profile, form.manager_id.data, org_id, "Manager introuvable.")
    if form.location_id.data:
        get_scoped(Location, form.location_id.data, org_id, "Lieu introuvable.")

    profile = create_account(
        org_id, form.email.data, form.first_name.data, form.last_name.data,
        role=form.role.data or "worker", password=form.password.data or None,
        job_title=form.job_title.data, location_id=form.location_id.data, manager_id=form.manager_id.data,
    )
    db.session.commit()
    current_app.logger.info("user %s created by %s", profile.id, current_user.profile.id)
    if not form.password.data:
        from ...jobs.notify import send_account_invite
        rq.enqueue(send_account_invite, profile.id, job_timeout=120)
    return jsonify({"user": profile.to_dict()}), 201


@bp.patch("/users")
@admin_required
def patch_user():
    payload = dict(json_payload())
    user_id = payload.pop("userId", None) or payload.pop("id", None)
    if not user_id:
        raise ServiceError("userId est requis.")
    profile = get_scoped(Profile, user_id, current_user.org_id, "Utilisateur introuvable.")
    me = current_user.profile
    if profile.id == me.id and (payload.get("role", me.role) != me.role or payload.get("is_active") is False):
        raise ServiceError("Vous ne pouvez pas modifier votre propre rôle ou statut.")
    update_profile(profile, payload)
    return jsonify({"success": True, "user": profile.to_dict()})


@bp.post("/users/import")
@admin_required
def import_users_route():
    upload = request.files.get("file")
    if upload is not None:
        rows = read_rows(upload)
    else:
        rows = json_payload().get("rows")
    if not rows or not isinstance(rows, list):
        raise ServiceError("Aucune donnée à importer")
    results, summary = import_users(current_user.org_id, rows)
    return jsonify({"results": results, "summary": summary})


@bp.get("/users/import/template")
@admin_required
def import_template():
    return send_file(io.BytesIO(template_csv(TEMPLATE_HEADERS, TEMPLATE_EXAMPLE)),
                     mimetype="text/csv", as_attachment=True, download_name="import-utilisateurs.csv")


@bp.post("/users/<int:user_id>/avatar")
@rate_limited("avatar-upload", 10)
@api_login_required
def post_avatar(user_id):
    profile = get_scoped(Profile, user_id, current_user.org_id, "Utilisateur introuvable.")
    upload_avatar(current_user.profile, profile, request.files.get("avatar"))
    return jsonify({"avatarUrl": profile.to_dict()["avatar_url"]})


@bp.get("/users/<int:user_id>/avatar")
@api_login_required
def get_avatar(user_id):
    profile = get_scoped(Profile, user_id, current_user.org_id, "Utilisateur introuvable.")
    if not profile.avatar_url:
        raise ServiceError("Aucun avatar.", 404)
    data = storage.download_bytes(profile.avatar_url)
    return send_file(io.BytesIO(data), mimetype=storage.guess_mimetype(profile.avatar_url))
