from flask import Blueprint

bp = Blueprint("job_profiles", __name__)

from . import routes  # noqa: E402,F401
