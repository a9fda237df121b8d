class ServiceError(Exception):
    """Business rule violation raised by app.services, rendered as JSON by the app."""

    def __init__(self, message, status_code=400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def get_scoped(model, obj_id, org_id, message="Introuvable."):
    """Load a row of the caller's organization or raise a 404 ServiceError."""
    from ..extensions import db
    try:
        obj = db.session.get(model, int(obj_id))
    except (TypeError, ValueError):
        obj = None
    if obj is None or getattr(obj, "org_id", None) != org_id:
        raise ServiceError(message, 404)
    return obj
