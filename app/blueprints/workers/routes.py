from flask import jsonify, request
from flask_login import current_user
from . import bp
from ...models.profile import Profile
from ...services import evaluations
from ...services.job_profiles import assign_job_profile, unassign_job_profile, worker_job_profiles
from ...services.statistics import workers_directory
from ...utils.decorators import evaluator_required
from ...utils.errors import get_scoped
from ...utils.forms import json_payload
from ...utils.rate_limit import rate_limited


@bp.get("/workers")
@evaluator_required
def list_workers():
    rows = workers_directory(
        current_user.profile,
        search=request.args.get("q"),
        location_id=request.args.get("location_id", type=int),
        job_profile_id=request.args.get("job_profile_id", type=int),
        my_team=request.args.get("my_team") in ("1", "true"),
    )
    return jsonify({"workers": rows})


@bp.get("/workers/<int:worker_id>/job-profiles")
@evaluator_required
def list_assignments(worker_id):
    worker = get_scoped(Profile, worker_id, current_user.org_id, "Collaborateur introuvable.")
    return jsonify({"job_profiles": worker_job_profiles(worker)})


@bp.post("/workers/<int:worker_id>/job-profiles")
@rate_limited("worker-jp-add", 20)
@evaluator_required
def add_assignment(worker_id):
    assign_job_profile(current_user.profile, worker_id, json_payload().get("jobProfileId"))
    return jsonify({"success": True})


@bp.delete("/workers/<int:worker_id>/job-profiles")
@rate_limited("worker-jp-del", 20)
@evaluator_required
def remove_assignment(worker_id):
    unassign_job_profile(current_user.profile, worker_id, json_payload().get("jobProfileId"))
    return jsonify({"success": True})


@bp.get("/workers/<int:worker_id>/comments")
@evaluator_required
def list_comments(worker_id):
    return jsonify({"comments": evaluations.list_worker_comments(current_user.profile, worker_id)})


@bp.post("/workers/<int:worker_id>/comments")
@evaluator_required
def add_comment(worker_id):
    comment = evaluations.add_worker_comment(current_user.profile, worker_id, json_payload().get("content"))
    return jsonify({"comment": comment.to_dict()}), 201


@bp.post("/workers/<int:worker_id>/continuous-evaluation")
@evaluator_required
def continuous_evaluation(worker_id):
    evaluation, created = evaluations.get_or_create_continuous_evaluation(
        current_user.profile, worker_id, json_payload().get("jobProfileId"))
    return jsonify({"evaluationId": evaluation.id, "created": created}), 201 if created else 200
