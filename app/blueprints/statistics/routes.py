from flask import jsonify
from flask_login import current_user
from . import bp
from ...services.statistics import colleague_profile, global_statistics, list_colleagues
from ...utils.decorators import api_login_required, evaluator_required


@bp.get("/statistics")
@evaluator_required
def statistics():
    return jsonify(global_statistics(current_user.org_id))


@bp.get("/colleagues")
@api_login_required
def colleagues():
    return jsonify({"colleagues": list_colleagues(current_user.profile)})


@bp.get("/colleagues/<int:colleague_id>")
@api_login_required
def colleague(colleague_id):
    return jsonify(colleague_profile(current_user.profile, colleague_id))
