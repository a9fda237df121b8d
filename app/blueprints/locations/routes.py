import io

from flask import current_app, jsonify, request, send_file
from flask_login import current_user
from . import bp
from .forms import LocationForm
from ...extensions import db
from ...models.location import Location
from ...models.profile import Profile
from ...services.location_import import TEMPLATE_EXAMPLE, TEMPLATE_HEADERS, import_locations
from ...services.spreadsheet import read_rows, template_csv
from ...utils.decorators import admin_required, api_login_required
from ...utils.errors import ServiceError, get_scoped
from ...utils.forms import json_form, json_payload, validate_or_raise


def _name_taken(org_id, name, exclude_id=None):
    q = Location.query.filter(Location.org_id == org_id,
                              db.func.lower(Location.name) == name.strip().lower())
    if exclude_id:
        q = q.filter(Location.id != exclude_id)
    return q.first() is not None


@bp.get("/locations")
@api_login_required
def list_locations():
    locations = Location.query.filter_by(org_id=current_user.org_id).order_by(Location.name).all()
    return jsonify({"locations": [l.to_dict() for l in locations]})


@bp.post("/locations")
@admin_required
def create_location():
    form = validate_or_raise(json_form(LocationForm))
    if _name_taken(current_user.org_id, form.name.data):
        raise ServiceError("Lieu déjà existant", 409)
    loc = Location(
        org_id=current_user.org_id,
        name=form.name.data.strip(),
        address=form.address.data or None,
        city=form.city.data or None,
        postal_code=form.postal_code.data or None,
        is_active=True,
    )
    db.session.add(loc)
    db.session.commit()
    return jsonify({"location": loc.to_dict()}), 201


@bp.patch("/locations")
@admin_required
def update_location():
    payload = dict(json_payload())
    loc = get_scoped(Location, payload.pop("locationId", None) or payload.pop("id", None),
                     current_user.org_id, "Lieu introuvable.")
    merged = loc.to_dict()
    merged.update(payload)
    form = validate_or_raise(json_form(LocationForm, merged))
    if _name_taken(current_user.org_id, form.name.data, exclude_id=loc.id):
        raise ServiceError("Lieu déjà existant", 409)
    loc.name = form.name.data.strip()
    loc.address = form.address.data or None
    loc.city = form.city.data or None
    loc.postal_code = form.postal_code.data or None
    loc.is_active = form.is_active.data
    db.session.commit()
    return jsonify({"success": True, "location": loc.to_dict()})


@bp.delete("/locations")
@admin_required
def delete_location():
    location_id = request.args.get("id")
    if not location_id:
        raise ServiceError("Location ID required")
    loc = get_scoped(Location, location_id, current_user.org_id, "Lieu introuvable.")
    Profile.query.filter_by(location_id=loc.id).update({"location_id": None})
    db.session.delete(loc)
    db.session.commit()
    current_app.logger.info("location %s deleted by %s", loc.id, current_user.profile.id)
    return jsonify({"success": True})


@bp.post("/locations/import")
@admin_required
def import_locations_route():
    upload = request.files.get("file")
    rows = read_rows(upload) if upload is not None else json_payload().get("rows")
    if not rows or not isinstance(rows, list):
        raise ServiceError("Aucune donnée à importer")
    results, summary = import_locations(current_user.org_id, rows)
    return jsonify({"results": results, "summary": summary})


@bp.get("/locations/import/template")
@admin_required
def import_template():
    return send_file(io.BytesIO(template_csv(TEMPLATE_HEADERS, TEMPLATE_EXAMPLE)),
                     mimetype="text/csv", as_attachment=True, download_name="import-lieux.csv")
