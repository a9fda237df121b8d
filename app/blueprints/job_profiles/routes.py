from flask import current_app, jsonify
from flask_login import current_user
from . import bp
from .forms import JobProfileForm
from ...extensions import db
from ...models.job_profile import JobProfile
from ...services.job_profiles import configure_job_profile, job_profile_detail, set_module_expected_score
from ...utils.decorators import api_login_required, skill_master_required
from ...utils.errors import ServiceError, get_scoped
from ...utils.forms import json_form, json_payload, validate_or_raise


def _job_profile(job_profile_id):
    return get_scoped(JobProfile, job_profile_id, current_user.org_id, "Profil métier introuvable.")


@bp.get("/job-profiles")
@api_login_required
def list_job_profiles():
    rows = JobProfile.query.filter_by(org_id=current_user.org_id).order_by(JobProfile.name).all()
    return jsonify({"job_profiles": [jp.to_dict() for jp in rows]})


@bp.get("/job-profiles/<int:job_profile_id>")
@api_login_required
def get_job_profile(job_profile_id):
    return jsonify({"job_profile": job_profile_detail(_job_profile(job_profile_id))})


@bp.post("/job-profiles")
@skill_master_required
def create_job_profile():
    form = validate_or_raise(json_form(JobProfileForm))
    jp = JobProfile(org_id=current_user.org_id, name=form.name.data.strip(),
                    description=form.description.data or None, is_active=True,
                    created_by=current_user.profile.id)
    db.session.add(jp)
    db.session.commit()
    return jsonify({"job_profile": jp.to_dict()}), 201


@bp.patch("/job-profiles/<int:job_profile_id>")
@skill_master_required
def update_job_profile(job_profile_id):
    jp = _job_profile(job_profile_id)
    merged = jp.to_dict()
    merged.update(json_payload())
    form = validate_or_raise(json_form(JobProfileForm, merged))
    jp.name = form.name.data.strip()
    jp.description = form.description.data or None
    jp.is_active = form.is_active.data
    db.session.commit()
    return jsonify({"job_profile": jp.to_dict()})


@bp.delete("/job-profiles/<int:job_profile_id>")
@skill_master_required
def delete_job_profile(job_profile_id):
    jp = _job_profile(job_profile_id)
    db.session.delete(jp)
    db.session.commit()
    current_app.logger.info("job profile %s deleted by %s", job_profile_id, current_user.profile.id)
    return jsonify({"success": True})


@bp.put("/job-profiles/<int:job_profile_id>/configuration")
@skill_master_required
def configure(job_profile_id):
    jp = _job_profile(job_profile_id)
    payload = json_payload()
    try:
        configure_job_profile(jp, payload.get("module_ids") or [],
                              payload.get("competency_settings") or {},
                              payload.get("qualifier_ids") or [])
    except (TypeError, ValueError, AttributeError):
        raise ServiceError("Configuration invalide.")
    return jsonify({"job_profile": job_profile_detail(jp)})


@bp.put("/job-profiles/<int:job_profile_id>/modules/<int:module_id>")
@skill_master_required
def put_expected_score(job_profile_id, module_id):
    jp = _job_profile(job_profile_id)
    row = set_module_expected_score(jp, module_id, json_payload().get("expected_score"))
    return jsonify(row.to_dict())
