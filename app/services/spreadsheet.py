import csv
from io import BytesIO, StringIO

import openpyxl

from ..utils.errors import ServiceError

XLSX_MIMETYPES = ('application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',)
CSV_MIMETYPES = ('text/csv', 'application/csv', 'text/plain')


def _cell_text(value):
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _rows_from_xlsx(data):
    wb = openpyxl.load_workbook(filename=BytesIO(data), read_only=True, data_only=True)
    try:
        sheet = wb[wb.sheetnames[0]]
        it = sheet.iter_rows(values_only=True)
        header = next(it, None)
        if not header:
            return []
        headers = [_cell_text(h) for h in header]
        rows = []
        for values in it:
            texts = [_cell_text(v) for v in values]
            if not any(texts):
                continue
            rows.append({h: t for h, t in zip(headers, texts) if h})
        return rows
    finally:
        wb.close()


def _rows_from_csv(data):
    text = data.decode('utf-8-sig')
    sample = text[:2048]
    try:
        dialect = csv.Sniffer().sniff(sample, delimiters=',;\t')
    except csv.Error:
        dialect = csv.excel
    reader = csv.DictReader(StringIO(text), dialect=dialect)
    rows = []
    for row in reader:
        cleaned = {k: (v or '').strip() for k, v in row.items() if k}
        if any(cleaned.values()):
            rows.append(cleaned)
    return rows


def read_rows(file_storage):
    """Parse an uploaded .csv or .xlsx into a list of {header: text} dicts."""
    filename = (getattr(file_storage, 'filename', '') or '').lower()
    mimetype = getattr(file_storage, 'mimetype', '') or ''
    data = file_storage.read()
    if filename.endswith('.xlsx') or mimetype in XLSX_MIMETYPES:
        try:
            return _rows_from_xlsx(data)
        except Exception as e:
            raise ServiceError(f"Fichier Excel illisible: {e}")
    if filename.endswith('.csv') or mimetype in CSV_MIMETYPES:
        try:
            return _rows_from_csv(data)
        except UnicodeDecodeError:
            raise ServiceError("Le fichier CSV doit être encodé en UTF-8.")
    raise ServiceError("Format de fichier non supporté. Utilisez un fichier .csv ou .xlsx.")


def template_csv(headers, example=None):
    buf = StringIO()
    writer = csv.writer(buf, delimiter=';')
    writer.writerow(headers)
    if example:
        writer.writerow(example)
    # BOM so that Excel opens accented headers correctly
    return ('﻿' + buf.getvalue()).encode('utf-8')
