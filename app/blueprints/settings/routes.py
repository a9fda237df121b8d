import io

from flask import jsonify, request, send_file
from flask_login import current_user
from . import bp
from ...services import settings as settings_service
from ...utils.decorators import api_login_required, skill_master_required
from ...utils.errors import ServiceError
from ...utils.forms import json_payload
from ...utils.rate_limit import rate_limited


@bp.get("/settings")
@api_login_required
def get_setting():
    key = request.args.get("key")
    if not key:
        raise ServiceError("Missing key parameter")
    return jsonify({"value": settings_service.get_setting(current_user.org_id, key)})


@bp.put("/settings")
@skill_master_required
def put_setting():
    payload = json_payload()
    if not payload.get("key") or "value" not in payload:
        raise ServiceError("Missing key or value")
    settings_service.put_setting(current_user.org_id, payload["key"], payload["value"], current_user.profile.id)
    return jsonify({"success": True})


@bp.post("/settings/logo")
@rate_limited("logo-upload", 5)
@skill_master_required
def upload_logo():
    url = settings_service.upload_logo(current_user.org_id, request.files.get("logo"), current_user.profile.id)
    return jsonify({"logoUrl": url})


@bp.delete("/settings/logo")
@rate_limited("logo-delete", 5)
@skill_master_required
def delete_logo():
    settings_service.remove_logo(current_user.org_id, current_user.profile.id)
    return jsonify({"success": True})


@bp.get("/settings/logo")
@api_login_required
def get_logo():
    found = settings_service.logo_file(current_user.org_id)
    if found is None:
        raise ServiceError("Aucun logo.", 404)
    data, mimetype = found
    return send_file(io.BytesIO(data), mimetype=mimetype)
