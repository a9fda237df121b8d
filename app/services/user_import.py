"""Bulk user import: header mapping, row validation and account creation.

Rows come either from JSON (already parsed by the browser) or from an uploaded
CSV/XLSX file read by :mod:`app.services.spreadsheet`. Every input row yields
exactly one outcome; a failed row never inserts anything.
"""
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from wtforms import Form, StringField, ValidationError
from wtforms.validators import AnyOf, DataRequired, Email

from ..extensions import db, rq
from ..models.location import Location
from ..models.profile import Profile, ROLES
from ..models.user import User
from .accounts import create_account

COLUMN_MAP = {
    'prénom': 'first_name',
    'prenom': 'first_name',
    'first_name': 'first_name',
    'firstname': 'first_name',
    'nom': 'last_name',
    'last_name': 'last_name',
    'lastname': 'last_name',
    'email': 'email',
    'e-mail': 'email',
    'mail': 'email',
    'role': 'role',
    'rôle': 'role',
    'emploi': 'job_title',
    'poste': 'job_title',
    'job_title': 'job_title',
    'job': 'job_title',
    'lieu': 'location',
    'location': 'location',
    "lieu d'exercice": 'location',
    'centre': 'location',
    'manager': 'manager',
    'responsable': 'manager',
    'email manager': 'manager',
    'manager (email)': 'manager',
}

ROLE_ALIASES = {
    'administrateur': 'super_admin',
    'admin': 'super_admin',
    'super_admin': 'super_admin',
    'skill_master': 'skill_master',
    'skill master': 'skill_master',
    'evaluateur': 'skill_master',
    'évaluateur': 'skill_master',
    'evaluator': 'skill_master',
    'manager': 'manager',
    'worker': 'worker',
    'collaborateur': 'worker',
    'audioprothesiste': 'worker',
    'audioprothésiste': 'worker',
}

TEMPLATE_HEADERS = ['Prénom', 'Nom', 'Email', 'Rôle', 'Emploi', 'Lieu', 'Manager (email)']
TEMPLATE_EXAMPLE = ['Jean', 'Dupont', 'jean.dupont@example.com', 'worker',
                    'Audioprothésiste', 'Paris Centre', 'manager@example.com']

ROLE_MESSAGE = 'Rôle invalide. Valeurs acceptées: ' + ', '.join(ROLES)
INVALID_ROW = 'Ligne invalide'
FIELDS = ('first_name', 'last_name', 'email', 'role', 'job_title', 'location', 'manager')


def normalize_role(value):
    """Map a free-text role to its canonical tag; unknown values are only lower-cased."""
    key = (value or '').strip().lower()
    return ROLE_ALIASES.get(key, key)


def map_row(raw):
    """Rename the raw row's headers through COLUMN_MAP; unknown headers are dropped."""
    mapped = {}
    for header, value in (raw or {}).items():
        target = COLUMN_MAP.get(str(header).strip().lower())
        if not target:
            continue
        text = '' if value is None else str(value).strip()
        # first non-empty value wins when two aliases hit the same column
        if text or target not in mapped:
            mapped[target] = text
    if 'role' in mapped:
        mapped['role'] = normalize_role(mapped['role'])
    return mapped


class ImportRowForm(Form):
    first_name = StringField(validators=[DataRequired(message='Prénom requis')])
    last_name = StringField(validators=[DataRequired(message='Nom requis')])
    email = StringField(validators=[Email(message='Email invalide')])
    role = StringField(validators=[AnyOf(ROLES, message=ROLE_MESSAGE)])
    job_title = StringField()
    location = StringField()
    manager = StringField()

    def validate_manager(self, field):
        if not field.data:
            return
        try:
            Email()(self, field)
        except ValidationError:
            raise ValidationError('Email du manager invalide')


def validate_row(mapped):
    """Return ``(data, errors)`` for one mapped row."""
    form = ImportRowForm(data={k: mapped.get(k, '') for k in FIELDS})
    ok = form.validate()
    data = {name: (field.data or '').strip() for name, field in form._fields.items()}
    data['manager'] = data['manager'].lower()
    if ok:
        return data, []
    errors = []
    for name in ('first_name', 'last_name', 'email', 'role', 'manager'):
        errors.extend(form.errors.get(name, []))
    return data, errors


def parse_and_validate_rows(raw_rows):
    """Validate every row. ``row_index`` is 1-based over the data rows."""
    out = []
    for index, raw in enumerate(raw_rows or [], start=1):
        if not isinstance(raw, dict):
            out.append({'row_index': index, 'data': dict.fromkeys(FIELDS, ''), 'errors': [INVALID_ROW]})
            continue
        data, errors = validate_row(map_row(raw))
        out.append({'row_index': index, 'data': data, 'errors': errors})
    return out


def _ensure_locations(org_id, validated):
    locations = {}
    for loc in Location.query.filter_by(org_id=org_id, is_active=True).all():
        locations.setdefault(loc.name.strip().lower(), loc)
    created = 0
    for row in validated:
        if row['errors']:
            continue
        name = row['data'].get('location')
        if not name or name.lower() in locations:
            continue
        loc = Location(org_id=org_id, name=name, is_active=True)
        db.session.add(loc)
        db.session.flush()
        locations[name.lower()] = loc
        created += 1
    if created:
        db.session.commit()
        current_app.logger.info('user import: created %s location(s) for org %s', created, org_id)
    return locations


def _send_invite(profile_id):
    from ..jobs.notify import send_account_invite
    try:
        rq.enqueue(send_account_invite, profile_id, job_timeout=120)
    except Exception:
        current_app.logger.exception('invitation enqueue failed for profile %s', profile_id)


def import_users(org_id, raw_rows, send_invites=True):
    """Create accounts for the valid rows.

    Returns ``(results, summary)``: one result per input row, in input order,
    and ``{'total', 'created', 'failed'}``.
    """
    validated = parse_and_validate_rows(raw_rows)
    locations = _ensure_locations(org_id, validated)

    taken = {email for (email,) in db.session.query(db.func.lower(User.email)).all()}
    created = {}
    results = []

    for row in validated:
        data = row['data']
        result = {'row_index': row['row_index'], 'email': data.get('email') or '',
                  'success': False, 'error': None, 'warning': None}
        results.append(result)

        if row['errors']:
            result['error'] = ', '.join(row['errors'])
            continue
        email = data['email'].lower()
        if email in taken:
            result['error'] = 'Utilisateur déjà existant'
            continue
        if email in created:
            result['error'] = 'Email en doublon dans le fichier'
            continue

        loc = locations.get(data['location'].lower()) if data.get('location') else None
        try:
            profile = create_account(
                org_id, email, data['first_name'], data['last_name'], role=data['role'],
                job_title=data.get('job_title') or None,
                location_id=loc.id if loc else None,
            )
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception('user import: row %s failed', row['row_index'])
            result['error'] = 'Erreur inattendue lors de la création'
            continue

        created[email] = profile.id
        result['success'] = True
        if send_invites:
            _send_invite(profile.id)

    # second pass: managers may be created later in the same file
    pending = [(r, v) for r, v in zip(results, validated) if r['success'] and v['data'].get('manager')]
    if pending:
        known = {p.email.lower(): p.id for p in Profile.query.filter_by(org_id=org_id).all()}
        for result, row in pending:
            manager_email = row['data']['manager']
            profile_id = created[row['data']['email'].lower()]
            manager_id = known.get(manager_email)
            if manager_id is None or manager_id == profile_id:
                result['warning'] = f'Manager "{manager_email}" non trouvé'
                continue
            db.session.get(Profile, profile_id).manager_id = manager_id
        db.session.commit()

    ok = sum(1 for r in results if r['success'])
    summary = {'total': len(results), 'created': ok, 'failed': len(results) - ok}
    current_app.logger.info('user import for org %s: %s', org_id, summary)
    return results, summary
