from app.extensions import db
from app.models.profile import Profile
from app.services.job_profiles import module_average


def test_module_average_defaults_and_rounding():
    assert module_average([], {}) == 0
    assert module_average([1, 2], {}) == 70
    # (80*1 + 65*1) / 2 = 72.5 -> 73
    assert module_average([1, 2], {1: {"weight": 1, "expected_score": 80},
                                   2: {"weight": 1, "expected_score": 65}}) == 73
    assert module_average([1, 2], {1: {"weight": 3, "expected_score": 90}}) == 85


def _create_job_profile(client, name="Audioprothésiste"):
    resp = client.post("/api/job-profiles", json={"name": name, "description": "Cabine et atelier"})
    assert resp.status_code == 201
    return resp.get_json()["job_profile"]["id"]


def test_configuration_sets_module_expectations(client, login, make_user, taxonomy):
    t = taxonomy
    make_user("sm@example.com", role="skill_master")
    login(client, "sm@example.com")
    jp = _create_job_profile(client)

    resp = client.put(f"/api/job-profiles/{jp}/configuration", json={
        "module_ids": [t["module"]],
        "competency_settings": {str(t["c1"]): {"weight": 2, "expected_score": 90}},
        "qualifier_ids": [t["level"]],
    })
    assert resp.status_code == 200
    detail = resp.get_json()["job_profile"]
    # (90*2 + 70*1) / 3 = 83.33
    assert [(m["module_id"], m["expected_score"]) for m in detail["modules"]] == [(t["module"], 83)]
    assert detail["qualifier_ids"] == [t["level"]]
    assert len(detail["competency_settings"]) == 2

    # reconfiguring with the same qualifier keeps a single link
    resp = client.put(f"/api/job-profiles/{jp}/configuration",
                      json={"module_ids": [t["module"], t["other_module"]], "qualifier_ids": [t["level"]]})
    detail = resp.get_json()["job_profile"]
    assert detail["qualifier_ids"] == [t["level"]]
    assert sorted(m["expected_score"] for m in detail["modules"]) == [70, 70]


def test_configuration_validation(client, login, make_user, taxonomy):
    make_user("sm@example.com", role="skill_master")
    login(client, "sm@example.com")
    jp = _create_job_profile(client)
    resp = client.put(f"/api/job-profiles/{jp}/configuration", json={"module_ids": [9999]})
    assert resp.get_json() == {"error": "Module introuvable."}
    resp = client.put(f"/api/job-profiles/{jp}/configuration", json={
        "module_ids": [taxonomy["module"]],
        "competency_settings": {str(taxonomy["c1"]): {"weight": 0}},
    })
    assert resp.get_json() == {"error": "Le poids doit être un entier >= 1."}
    resp = client.put(f"/api/job-profiles/{jp}/modules/{taxonomy['module']}", json={"expected_score": 140})
    assert resp.status_code == 400
    resp = client.put(f"/api/job-profiles/{jp}/modules/{taxonomy['module']}", json={"expected_score": 55})
    assert resp.get_json()["expected_score"] == 55


def test_assignment_updates_worker_title(client, app, login, make_user):
    make_user("sm@example.com", role="skill_master")
    worker = make_user("paul.durand@example.com")
    login(client, "sm@example.com")
    first = _create_job_profile(client, "Assistant(e)")
    second = _create_job_profile(client, "Audioprothésiste")

    url = f"/api/workers/{worker}/job-profiles"
    assert client.post(url, json={"jobProfileId": first}).status_code == 200
    assert client.post(url, json={"jobProfileId": second}).status_code == 200

    resp = client.post(url, json={"jobProfileId": first})
    assert resp.status_code == 409
    assert resp.get_json() == {"error": "Ce profil métier est déjà attribué"}

    assert [jp["name"] for jp in client.get(url).get_json()["job_profiles"]] == ["Assistant(e)", "Audioprothésiste"]
    with app.app_context():
        assert db.session.get(Profile, worker).job_title == "Audioprothésiste"

    client.delete(url, json={"jobProfileId": second})
    with app.app_context():
        profile = db.session.get(Profile, worker)
        assert profile.job_title == "Assistant(e)"
        assert profile.job_profile_id == first

    client.delete(url, json={"jobProfileId": first})
    with app.app_context():
        assert db.session.get(Profile, worker).job_title is None

    assert client.post(url, json={}).get_json() == {"error": "jobProfileId est requis."}


def test_worker_cannot_write_job_profiles(client, login, make_user):
    make_user("paul.durand@example.com")
    login(client, "paul.durand@example.com")
    assert client.get("/api/job-profiles").status_code == 200
    assert client.post("/api/job-profiles", json={"name": "X"}).status_code == 403


def test_patch_can_deactivate(client, login, make_user):
    make_user("sm@example.com", role="skill_master")
    login(client, "sm@example.com")
    jp = _create_job_profile(client)
    resp = client.patch(f"/api/job-profiles/{jp}", json={"is_active": False})
    assert resp.get_json()["job_profile"]["is_active"] is False
    assert resp.get_json()["job_profile"]["description"] == "Cabine et atelier"
