import io

from app.extensions import db
from app.models.location import Location
from app.models.profile import Profile

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def test_admin_creates_and_updates_users(client, app, login, make_user, org_id):
    admin = make_user("admin@example.com", role="super_admin")
    login(client, "admin@example.com")

    resp = client.post("/api/users", json={"email": "lea.martin@example.com", "first_name": "Léa",
                                           "last_name": "Martin", "manager_id": admin})
    assert resp.status_code == 201
    user = resp.get_json()["user"]
    assert user["role"] == "worker"
    assert user["manager_id"] == admin

    resp = client.post("/api/users", json={"email": "LEA.MARTIN@example.com", "first_name": "Léa",
                                           "last_name": "Martin"})
    assert resp.status_code == 409

    resp = client.patch("/api/users", json={"userId": user["id"], "role": "manager", "job_title": "Assistante"})
    assert resp.get_json()["user"]["role"] == "manager"

    resp = client.patch("/api/users", json={"userId": user["id"], "role": "chef"})
    assert resp.get_json() == {"error": "Rôle invalide."}

    resp = client.patch("/api/users", json={"userId": admin, "role": "worker"})
    assert resp.status_code == 400

    with app.app_context():
        assert db.session.get(Profile, user["id"]).job_title == "Assistante"


def test_avatar_upload_and_download(client, app, login, make_user):
    worker = make_user("paul.durand@example.com")
    other = make_user("marc.roux@example.com")
    login(client, "paul.durand@example.com")

    resp = client.post(f"/api/users/{worker}/avatar",
                       data={"avatar": (io.BytesIO(PNG), "moi.png", "image/png")},
                       content_type="multipart/form-data")
    assert resp.status_code == 200
    assert resp.get_json() == {"avatarUrl": f"/api/users/{worker}/avatar"}

    resp = client.get(f"/api/users/{worker}/avatar")
    assert resp.status_code == 200
    assert resp.data == PNG
    assert resp.mimetype == "image/png"

    resp = client.post(f"/api/users/{other}/avatar",
                       data={"avatar": (io.BytesIO(PNG), "x.png", "image/png")},
                       content_type="multipart/form-data")
    assert resp.status_code == 403

    resp = client.post(f"/api/users/{worker}/avatar",
                       data={"avatar": (io.BytesIO(b"GIF89a"), "x.gif", "image/gif")},
                       content_type="multipart/form-data")
    assert resp.get_json() == {"error": "Type de fichier non supporté. Utilisez PNG, JPG ou WebP."}


def test_avatar_size_cap(client, app, login, make_user):
    worker = make_user("paul.durand@example.com")
    login(client, "paul.durand@example.com")
    app.config["MAX_UPLOAD_BYTES"] = 16
    resp = client.post(f"/api/users/{worker}/avatar",
                       data={"avatar": (io.BytesIO(PNG), "moi.png", "image/png")},
                       content_type="multipart/form-data")
    assert resp.get_json() == {"error": "Le fichier est trop volumineux (max 2 Mo)."}


def test_settings_defaults_and_update(client, login, make_user):
    make_user("sm@example.com", role="skill_master")
    make_user("paul.durand@example.com")
    login(client, "sm@example.com")

    assert client.get("/api/settings?key=chart_colors").get_json() == {
        "value": {"actual": "#8b5cf6", "expected": "#9ca3af"}}
    assert client.get("/api/settings?key=unknown").get_json() == {"value": None}
    assert client.get("/api/settings").status_code == 400

    resp = client.put("/api/settings", json={"key": "chart_colors",
                                             "value": {"actual": "#000000", "expected": "#ffffff"}})
    assert resp.status_code == 200
    assert client.get("/api/settings?key=chart_colors").get_json()["value"]["actual"] == "#000000"

    worker = client.application.test_client()
    worker.post("/auth/login", data={"email": "paul.durand@example.com", "password": "motdepasse-123"})
    assert worker.put("/api/settings", json={"key": "chart_colors", "value": {}}).status_code == 403
    assert worker.get("/api/settings?key=chart_colors").get_json()["value"]["actual"] == "#000000"


def test_logo_upload_updates_branding(client, login, make_user):
    make_user("sm@example.com", role="skill_master")
    login(client, "sm@example.com")

    resp = client.post("/api/settings/logo", data={"logo": (io.BytesIO(PNG), "logo.png", "image/png")},
                       content_type="multipart/form-data")
    assert resp.get_json() == {"logoUrl": "/api/settings/logo"}
    branding = client.get("/api/settings?key=company_branding").get_json()["value"]
    assert branding["logoUrl"] == "/api/settings/logo"

    resp = client.get("/api/settings/logo")
    assert resp.data == PNG

    client.delete("/api/settings/logo")
    assert client.get("/api/settings/logo").status_code == 404
    assert client.get("/api/settings?key=company_branding").get_json()["value"]["logoUrl"] is None


def test_location_delete_detaches_profiles(client, app, login, make_user, org_id):
    worker = make_user("paul.durand@example.com")
    make_user("admin@example.com", role="super_admin")
    with app.app_context():
        loc = Location(org_id=org_id, name="Lyon")
        db.session.add(loc)
        db.session.commit()
        location_id = loc.id
        db.session.get(Profile, worker).location_id = location_id
        db.session.commit()

    login(client, "admin@example.com")
    assert client.post("/api/locations", json={"name": "lyon"}).status_code == 409
    assert client.delete(f"/api/locations?id={location_id}").status_code == 200
    with app.app_context():
        assert db.session.get(Profile, worker).location_id is None
