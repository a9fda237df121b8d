from functools import wraps
from flask import abort
from flask_login import current_user

from ..models.profile import EVALUATOR_ROLES


def roles_required(*roles):
    """Gate a view on the caller's role.

    The role comes from the Profile row loaded for this request by the
    Flask-Login user loader, so a role change applies on the next call.
    """
    allowed = set(roles)

    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            if not current_user.is_authenticated:
                abort(401, description="Non authentifié")
            profile = current_user.profile
            if profile is None or not profile.is_active:
                abort(403, description="Accès refusé")
            if allowed and profile.role not in allowed:
                abort(403, description="Accès refusé")
            return view(*args, **kwargs)
        return wrapped
    return decorator


def api_login_required(view):
    return roles_required()(view)


def admin_required(view):
    return roles_required("super_admin")(view)


def skill_master_required(view):
    return roles_required("super_admin", "skill_master")(view)


def evaluator_required(view):
    return roles_required(*EVALUATOR_ROLES)(view)
