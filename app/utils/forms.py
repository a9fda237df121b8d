from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict

from .errors import ServiceError


def json_payload():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ServiceError('Corps JSON invalide.')
    return data


def json_form(form_cls, payload=None):
    """Bind a FlaskForm to a JSON body; null values count as absent."""
    if payload is None:
        payload = json_payload()
    clean = MultiDict()
    for key, value in payload.items():
        if value is None or isinstance(value, dict):
            continue
        if isinstance(value, bool):
            # BooleanField only treats "false" and "" as false
            clean.add(key, "y" if value else "false")
        elif isinstance(value, list):
            for item in value:
                clean.add(key, item)
        else:
            clean.add(key, value)
    return form_cls(formdata=clean)


def validate_or_raise(form):
    if form.validate():
        return form
    for field in form:
        if field.errors:
            raise ServiceError(field.errors[0])
    raise ServiceError('Données invalides.')


class ApiForm(FlaskForm):
    """JSON endpoints authenticate with the session cookie and carry no CSRF token."""
    class Meta:
        csrf = False
