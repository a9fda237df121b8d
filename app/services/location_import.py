from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from wtforms import Form, StringField
from wtforms.validators import DataRequired

from ..extensions import db
from ..models.location import Location

LOCATION_COLUMN_MAP = {
    'nom': 'name',
    'name': 'name',
    'nom du lieu': 'name',
    'lieu': 'name',
    'centre': 'name',
    'adresse': 'address',
    'address': 'address',
    'ville': 'city',
    'city': 'city',
    'code postal': 'postal_code',
    'postal_code': 'postal_code',
    'cp': 'postal_code',
    'zip': 'postal_code',
    'zipcode': 'postal_code',
    'code_postal': 'postal_code',
}

TEMPLATE_HEADERS = ['Nom', 'Adresse', 'Ville', 'Code postal']
TEMPLATE_EXAMPLE = ['Paris Centre', '12 rue de Rivoli', 'Paris', '75001']
FIELDS = ('name', 'address', 'city', 'postal_code')


class LocationRowForm(Form):
    name = StringField(validators=[DataRequired(message='Nom requis')])
    address = StringField()
    city = StringField()
    postal_code = StringField()


def map_row(raw):
    mapped = {}
    for header, value in (raw or {}).items():
        target = LOCATION_COLUMN_MAP.get(str(header).strip().lower())
        if not target:
            continue
        text = '' if value is None else str(value).strip()
        if text or target not in mapped:
            mapped[target] = text
    return mapped


def parse_and_validate_rows(raw_rows):
    out = []
    seen = set()
    for index, raw in enumerate(raw_rows or [], start=1):
        if not isinstance(raw, dict):
            out.append({'row_index': index, 'data': dict.fromkeys(FIELDS, ''), 'errors': ['Ligne invalide']})
            continue
        mapped = map_row(raw)
        form = LocationRowForm(data={k: mapped.get(k, '') for k in FIELDS})
        errors = [] if form.validate() else list(form.errors.get('name', []))
        data = {name: (field.data or '').strip() for name, field in form._fields.items()}
        key = data['name'].lower()
        if key and not errors:
            if key in seen:
                errors.append('Nom en doublon dans le fichier')
            else:
                seen.add(key)
        out.append({'row_index': index, 'data': data, 'errors': errors})
    return out


def import_locations(org_id, raw_rows):
    """Returns ``(results, summary)``; summary carries ``skipped`` for rows that already exist."""
    validated = parse_and_validate_rows(raw_rows)
    existing = {l.name.strip().lower() for l in Location.query.filter_by(org_id=org_id).all()}

    results = []
    for row in validated:
        data = row['data']
        result = {'row_index': row['row_index'], 'name': data['name'],
                  'success': False, 'error': None, 'warning': None}
        results.append(result)
        if row['errors']:
            result['error'] = ', '.join(row['errors'])
            continue
        if data['name'].lower() in existing:
            result['error'] = 'Lieu déjà existant'
            continue
        try:
            db.session.add(Location(
                org_id=org_id,
                name=data['name'],
                address=data['address'] or None,
                city=data['city'] or None,
                postal_code=data['postal_code'] or None,
                is_active=True,
            ))
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception('location import: row %s failed', row['row_index'])
            result['error'] = 'Erreur inattendue lors de la création'
            continue
        existing.add(data['name'].lower())
        result['success'] = True

    created = sum(1 for r in results if r['success'])
    skipped = sum(1 for r in results if r['error'] == 'Lieu déjà existant')
    summary = {
        'total': len(results),
        'created': created,
        'skipped': skipped,
        'failed': len(results) - created - skipped,
    }
    current_app.logger.info('location import for org %s: %s', org_id, summary)
    return results, summary
