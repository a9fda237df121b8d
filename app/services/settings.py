"""Organization settings (key -> JSON value) and the company logo."""
from flask import current_app

from ..extensions import db
from ..models.setting import Setting
from ..utils.errors import ServiceError
from . import storage

DEFAULTS = {
    'chart_colors': {'actual': '#8b5cf6', 'expected': '#9ca3af'},
    'company_branding': {'logoUrl': None, 'accentColor': None},
}

LOGO_KEY = 'company_logo'
LOGO_PUBLIC_URL = '/api/settings/logo'


def get_setting(org_id, key, default=None):
    row = Setting.query.filter_by(org_id=org_id, key=key).first()
    if row is None or row.value is None:
        return DEFAULTS.get(key, default)
    return row.value


def put_setting(org_id, key, value, updated_by=None):
    key = (key or '').strip()
    if not key:
        raise ServiceError('Clé manquante.')
    row = Setting.query.filter_by(org_id=org_id, key=key).first()
    if row is None:
        row = Setting(org_id=org_id, key=key)
        db.session.add(row)
    row.value = value
    row.updated_by = updated_by
    db.session.commit()
    return row


def _merge_branding(org_id, updated_by, **changes):
    branding = dict(get_setting(org_id, 'company_branding') or {})
    branding.update(changes)
    put_setting(org_id, 'company_branding', branding, updated_by)
    return branding


def upload_logo(org_id, file_storage, updated_by=None):
    storage.validate_upload(file_storage, storage.LOGO_TYPES, 'PNG, JPG, SVG ou WebP')
    previous = get_setting(org_id, LOGO_KEY)
    ext = storage.extension_for(file_storage, 'png')
    url = storage.save_file(file_storage, prefix=f'org-{org_id}', name=f'company-logo.{ext}')
    if previous and previous.get('url') and previous['url'] != url:
        try:
            storage.delete_file(previous['url'])
        except Exception:
            current_app.logger.exception('could not remove previous logo of org %s', org_id)
    put_setting(org_id, LOGO_KEY, {'url': url, 'mimetype': file_storage.mimetype}, updated_by)
    _merge_branding(org_id, updated_by, logoUrl=LOGO_PUBLIC_URL)
    current_app.logger.info('logo uploaded for org %s', org_id)
    return LOGO_PUBLIC_URL


def remove_logo(org_id, updated_by=None):
    stored = get_setting(org_id, LOGO_KEY)
    if stored and stored.get('url'):
        try:
            storage.delete_file(stored['url'])
        except Exception:
            current_app.logger.exception('could not remove logo of org %s', org_id)
    put_setting(org_id, LOGO_KEY, None, updated_by)
    _merge_branding(org_id, updated_by, logoUrl=None)


def logo_file(org_id):
    """(bytes, mimetype) of the stored logo, or None."""
    stored = get_setting(org_id, LOGO_KEY)
    if not stored or not stored.get('url'):
        return None
    return storage.download_bytes(stored['url']), stored.get('mimetype') or storage.guess_mimetype(stored['url'])
