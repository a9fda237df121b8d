from flask import jsonify
from flask_login import current_user
from . import bp
from ...services import evaluations
from ...utils.decorators import api_login_required, evaluator_required
from ...utils.forms import json_payload


@bp.get("/evaluations")
@api_login_required
def list_evaluations():
    return jsonify({"evaluations": evaluations.list_evaluations(current_user.profile)})


@bp.post("/evaluations")
@evaluator_required
def create_evaluation():
    payload = json_payload()
    evaluation = evaluations.create_evaluation(current_user.profile, payload.get("worker_id"),
                                               payload.get("job_profile_id"), payload.get("title"))
    return jsonify({"id": evaluation.id, "evaluation": evaluation.to_dict()}), 201


@bp.get("/evaluations/<int:evaluation_id>")
@api_login_required
def get_evaluation(evaluation_id):
    return jsonify(evaluations.get_evaluation(current_user.profile, evaluation_id))


@bp.put("/evaluations/<int:evaluation_id>/results")
@evaluator_required
def save_results(evaluation_id):
    evaluation = evaluations.save_results(current_user.profile, evaluation_id, json_payload().get("answers"))
    return jsonify({"success": True, "status": evaluation.status})


@bp.post("/evaluations/<int:evaluation_id>/complete")
@evaluator_required
def complete(evaluation_id):
    evaluation = evaluations.complete_evaluation(current_user.profile, evaluation_id)
    return jsonify({"success": True, "evaluation": evaluation.to_dict()})


@bp.post("/evaluations/<int:evaluation_id>/snapshots")
@evaluator_required
def save_with_snapshot(evaluation_id):
    _, snapshot = evaluations.save_with_snapshot(current_user.profile, evaluation_id,
                                                 json_payload().get("answers"))
    return jsonify({"success": True, "snapshot_id": snapshot.id}), 201


@bp.get("/evaluations/<int:evaluation_id>/snapshots")
@api_login_required
def snapshots(evaluation_id):
    return jsonify({"history": evaluations.snapshot_history(current_user.profile, evaluation_id)})


@bp.get("/evaluations/<int:evaluation_id>/comments")
@api_login_required
def list_comments(evaluation_id):
    return jsonify({"comments": evaluations.list_comments(current_user.profile, evaluation_id)})


@bp.post("/evaluations/<int:evaluation_id>/comments")
@evaluator_required
def add_comment(evaluation_id):
    comment = evaluations.add_comment(current_user.profile, evaluation_id, json_payload().get("content"))
    return jsonify({"comment": comment.to_dict()}), 201
