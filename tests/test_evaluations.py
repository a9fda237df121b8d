import pytest

from app.extensions import db
from app.models.evaluation import Evaluation


@pytest.fixture
def team(make_user):
    manager = make_user("claire.petit@example.com", role="manager", first_name="Claire", last_name="Petit")
    return {
        "master": make_user("sm@example.com", role="skill_master", first_name="Sam", last_name="Master"),
        "manager": manager,
        "worker": make_user("paul.durand@example.com", first_name="Paul", last_name="Durand",
                            manager_id=manager),
        "outsider": make_user("marc.roux@example.com", first_name="Marc", last_name="Roux"),
    }


def _answers(t, level_index=3):
    return {str(t["c1"]): {str(t["level"]): t["levels"][level_index],
                           str(t["contexts"]): [t["ctx"][0], t["ctx"][1]]}}


def test_answers_round_trip(client, login, team, taxonomy):
    t = taxonomy
    login(client, "sm@example.com")
    resp = client.post("/api/evaluations", json={"worker_id": team["worker"], "title": "Bilan annuel"})
    assert resp.status_code == 201
    evaluation_id = resp.get_json()["id"]
    assert resp.get_json()["evaluation"]["status"] == "draft"

    resp = client.put(f"/api/evaluations/{evaluation_id}/results", json={"answers": _answers(t)})
    assert resp.get_json() == {"success": True, "status": "in_progress"}

    body = client.get(f"/api/evaluations/{evaluation_id}").get_json()
    assert body["answers"] == {str(t["c1"]): {str(t["level"]): [t["levels"][3]],
                                              str(t["contexts"]): [t["ctx"][0], t["ctx"][1]]}}
    m1 = next(s for s in body["module_scores"] if s["module_code"] == "M1")
    assert m1["completion_pct"] == 50.0

    # saving again replaces the previous answers of the competency
    client.put(f"/api/evaluations/{evaluation_id}/results",
               json={"answers": {str(t["c1"]): {str(t["level"]): t["levels"][1]}}})
    body = client.get(f"/api/evaluations/{evaluation_id}").get_json()
    assert body["answers"] == {str(t["c1"]): {str(t["level"]): [t["levels"][1]]}}


def test_option_must_belong_to_qualifier(client, login, team, taxonomy):
    t = taxonomy
    login(client, "sm@example.com")
    evaluation_id = client.post("/api/evaluations", json={"worker_id": team["worker"]}).get_json()["id"]
    resp = client.put(f"/api/evaluations/{evaluation_id}/results",
                      json={"answers": {str(t["c1"]): {str(t["level"]): t["ctx"][0]}}})
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Option invalide pour ce qualificateur."}

    resp = client.put(f"/api/evaluations/{evaluation_id}/results",
                      json={"answers": {str(t["c1"]): {str(t["level"]): t["levels"][:2]}}})
    assert resp.get_json() == {"error": "Une seule option autorisée pour ce qualificateur."}

    resp = client.put(f"/api/evaluations/{evaluation_id}/results", json={"answers": ["x"]})
    assert resp.get_json() == {"error": "Format de réponses invalide."}


def test_completed_evaluation_is_read_only(client, login, team, taxonomy):
    login(client, "sm@example.com")
    evaluation_id = client.post("/api/evaluations", json={"worker_id": team["worker"]}).get_json()["id"]
    resp = client.post(f"/api/evaluations/{evaluation_id}/complete")
    assert resp.get_json()["evaluation"]["status"] == "completed"
    assert resp.get_json()["evaluation"]["evaluated_at"] is not None

    resp = client.put(f"/api/evaluations/{evaluation_id}/results", json={"answers": _answers(taxonomy)})
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Cette evaluation est deja terminee."}


def test_only_owner_can_save(client, app, login, team, taxonomy):
    login(client, "sm@example.com")
    evaluation_id = client.post("/api/evaluations", json={"worker_id": team["worker"]}).get_json()["id"]

    other = app.test_client()
    login(other, "claire.petit@example.com")
    resp = other.put(f"/api/evaluations/{evaluation_id}/results", json={"answers": _answers(taxonomy)})
    assert resp.status_code == 403


def test_manager_limited_to_own_team(client, login, team):
    login(client, "claire.petit@example.com")
    resp = client.post("/api/evaluations", json={"worker_id": team["outsider"]})
    assert resp.status_code == 403
    resp = client.post("/api/evaluations", json={"worker_id": team["worker"]})
    assert resp.status_code == 201

    listing = client.get("/api/evaluations").get_json()["evaluations"]
    assert listing[0]["is_my_team"] is True


def test_worker_sees_only_own_evaluations(client, app, login, team):
    login(client, "sm@example.com")
    own = client.post("/api/evaluations", json={"worker_id": team["worker"]}).get_json()["id"]
    foreign = client.post("/api/evaluations", json={"worker_id": team["outsider"]}).get_json()["id"]

    worker = app.test_client()
    login(worker, "paul.durand@example.com")
    assert [e["id"] for e in worker.get("/api/evaluations").get_json()["evaluations"]] == [own]
    assert worker.get(f"/api/evaluations/{foreign}").status_code == 404
    assert worker.post("/api/evaluations", json={"worker_id": team["worker"]}).status_code == 403


def test_continuous_evaluation_is_prefilled(client, app, login, team, taxonomy):
    t = taxonomy
    login(client, "sm@example.com")
    previous = client.post("/api/evaluations", json={"worker_id": team["worker"]}).get_json()["id"]
    client.put(f"/api/evaluations/{previous}/results", json={"answers": _answers(t, level_index=2)})
    client.post(f"/api/evaluations/{previous}/complete")

    resp = client.post(f"/api/workers/{team['worker']}/continuous-evaluation", json={})
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["created"] is True
    continuous = body["evaluationId"]
    assert continuous != previous

    detail = client.get(f"/api/evaluations/{continuous}").get_json()
    assert detail["evaluation"]["is_continuous"] is True
    assert detail["answers"][str(t["c1"])][str(t["level"])] == [t["levels"][2]]

    again = client.post(f"/api/workers/{team['worker']}/continuous-evaluation", json={})
    assert again.status_code == 200
    assert again.get_json() == {"evaluationId": continuous, "created": False}


def test_snapshots_record_score_history(client, login, team, taxonomy):
    t = taxonomy
    login(client, "sm@example.com")
    evaluation_id = client.post(f"/api/workers/{team['worker']}/continuous-evaluation",
                                json={}).get_json()["evaluationId"]

    resp = client.post(f"/api/evaluations/{evaluation_id}/snapshots",
                       json={"answers": {str(t["c1"]): {str(t["level"]): t["levels"][1]}}})
    assert resp.status_code == 201
    client.post(f"/api/evaluations/{evaluation_id}/snapshots", json={"answers": _answers(t)})

    history = client.get(f"/api/evaluations/{evaluation_id}/snapshots").get_json()["history"]
    assert len(history) == 2
    first, second = history
    assert first["id"] < second["id"]
    m1 = [s for s in first["module_scores"] if s["module_code"] == "M1"][0]
    assert m1["completion_pct"] == 10.0
    assert second["overall_avg"] > first["overall_avg"]
    assert second["author_name"] == "Sam Master"


def test_comments(client, login, team):
    login(client, "sm@example.com")
    evaluation_id = client.post("/api/evaluations", json={"worker_id": team["worker"]}).get_json()["id"]
    resp = client.post(f"/api/evaluations/{evaluation_id}/comments", json={"content": "   "})
    assert resp.get_json() == {"error": "Le commentaire ne peut pas être vide."}
    resp = client.post(f"/api/evaluations/{evaluation_id}/comments", json={"content": "Très bon accueil."})
    assert resp.status_code == 201
    comments = client.get(f"/api/evaluations/{evaluation_id}/comments").get_json()["comments"]
    assert [c["content"] for c in comments] == ["Très bon accueil."]

    resp = client.post(f"/api/workers/{team['worker']}/comments", json={"content": "A suivre en cabine."})
    assert resp.status_code == 201
    comments = client.get(f"/api/workers/{team['worker']}/comments").get_json()["comments"]
    assert len(comments) == 1


def test_foreign_organization_is_invisible(client, app, login, team, make_user):
    from app.models.organization import Organization
    with app.app_context():
        org = Organization(name="Concurrent")
        db.session.add(org)
        db.session.commit()
        other_org = org.id
    stranger = make_user("stranger@example.com", org=other_org)

    login(client, "sm@example.com")
    resp = client.post("/api/evaluations", json={"worker_id": stranger})
    assert resp.status_code == 404
    with app.app_context():
        assert Evaluation.query.count() == 0
