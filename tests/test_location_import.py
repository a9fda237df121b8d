import io

import openpyxl
import pytest
from werkzeug.datastructures import FileStorage

from app.extensions import db
from app.models.location import Location
from app.services.location_import import import_locations, parse_and_validate_rows
from app.services.spreadsheet import read_rows
from app.utils.errors import ServiceError


def _xlsx(rows):
    wb = openpyxl.Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    return FileStorage(stream=buf, filename="lieux.xlsx")


def test_read_xlsx_rows():
    upload = _xlsx([["Nom", "Ville", "Code postal"],
                    ["Paris Centre", "Paris", 75001],
                    [None, None, None],
                    ["Lyon", "Lyon", "69003"]])
    assert read_rows(upload) == [
        {"Nom": "Paris Centre", "Ville": "Paris", "Code postal": "75001"},
        {"Nom": "Lyon", "Ville": "Lyon", "Code postal": "69003"},
    ]


def test_read_csv_with_comma_delimiter():
    upload = FileStorage(stream=io.BytesIO("Nom,Ville\nLille,Lille\n".encode("utf-8")), filename="lieux.csv")
    assert read_rows(upload) == [{"Nom": "Lille", "Ville": "Lille"}]


def test_read_rows_rejects_other_formats():
    upload = FileStorage(stream=io.BytesIO(b"%PDF-1.4"), filename="lieux.pdf", content_type="application/pdf")
    with pytest.raises(ServiceError) as exc:
        read_rows(upload)
    assert exc.value.message == "Format de fichier non supporté. Utilisez un fichier .csv ou .xlsx."


def test_read_csv_requires_utf8():
    upload = FileStorage(stream=io.BytesIO("Nom\nSaint-Étienne\n".encode("latin-1")), filename="lieux.csv")
    with pytest.raises(ServiceError) as exc:
        read_rows(upload)
    assert exc.value.message == "Le fichier CSV doit être encodé en UTF-8."


def test_duplicate_names_in_file():
    rows = parse_and_validate_rows([{"Nom": "Paris Centre"}, {"nom du lieu": "paris centre"}, {"Ville": "Nice"}])
    assert rows[0]["errors"] == []
    assert rows[1]["errors"] == ["Nom en doublon dans le fichier"]
    assert rows[2]["errors"] == ["Nom requis"]


def test_rows_that_are_not_objects_fail(app, org_id):
    with app.app_context():
        results, summary = import_locations(org_id, [["Paris"], {"Nom": "Lille"}, 42])
        assert [r["error"] for r in results] == ["Ligne invalide", None, "Ligne invalide"]
        assert summary == {"total": 3, "created": 1, "skipped": 0, "failed": 2}
        assert [loc.name for loc in Location.query.all()] == ["Lille"]


def test_existing_locations_are_skipped(app, org_id):
    with app.app_context():
        db.session.add(Location(org_id=org_id, name="Paris Centre"))
        db.session.commit()
        results, summary = import_locations(org_id, [
            {"Nom": "PARIS CENTRE"},
            {"Nom": "Bordeaux", "Adresse": "3 cours de l'Intendance", "CP": "33000", "Ville": "Bordeaux"},
        ])
        assert results[0] == {"row_index": 1, "name": "PARIS CENTRE", "success": False,
                              "error": "Lieu déjà existant", "warning": None}
        assert results[1]["success"] is True
        assert summary == {"total": 2, "created": 1, "skipped": 1, "failed": 0}
        bordeaux = Location.query.filter_by(name="Bordeaux").one()
        assert bordeaux.postal_code == "33000"
        assert bordeaux.city == "Bordeaux"


def test_location_import_endpoint(client, make_user, login):
    make_user("admin@example.com", role="super_admin")
    login(client, "admin@example.com")
    resp = client.post("/api/locations/import", json={"rows": [{"Nom": "Nantes"}, {"Nom": "Nantes"}]})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["summary"]["created"] == 1
    assert body["results"][1]["error"] == "Nom en doublon dans le fichier"

    resp = client.get("/api/locations")
    assert [loc["name"] for loc in resp.get_json()["locations"]] == ["Nantes"]
