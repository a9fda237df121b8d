def test_library_crud(client, login, make_user):
    make_user("sm@example.com", role="skill_master")
    login(client, "sm@example.com")

    root = client.post("/api/modules", json={"code": "M1", "name": "Accueil", "sort_order": 1})
    assert root.status_code == 201
    root_id = root.get_json()["module"]["id"]
    child = client.post("/api/modules", json={"code": "M1.1", "name": "Téléphone", "parent_id": root_id})
    child_id = child.get_json()["module"]["id"]

    resp = client.post("/api/modules", json={"code": "M1.1.1", "name": "Trop profond", "parent_id": child_id})
    assert resp.get_json() == {"error": "Un sous-module ne peut pas contenir de sous-module."}
    assert client.post("/api/modules", json={"name": "Sans code"}).get_json() == {
        "error": "Le code et le nom sont requis."}

    comp = client.post("/api/competencies", json={"module_id": child_id, "name": "Prendre un rendez-vous"})
    assert comp.status_code == 201

    qualifier = client.post("/api/qualifiers", json={"name": "Maîtrise", "qualifier_type": "single_choice"})
    qualifier_id = qualifier.get_json()["qualifier"]["id"]
    assert client.post("/api/qualifiers", json={"name": "X", "qualifier_type": "echelle"}).get_json() == {
        "error": "Type de qualificateur invalide."}
    option = client.post("/api/qualifier-options", json={"qualifier_id": qualifier_id, "label": "Acquis",
                                                          "value": 2})
    assert option.status_code == 201

    resp = client.put(f"/api/modules/{root_id}/qualifiers", json={"qualifier_ids": [qualifier_id]})
    assert resp.get_json() == {"qualifier_ids": [qualifier_id]}
    resp = client.put(f"/api/modules/{root_id}/qualifiers", json={"qualifier_ids": [qualifier_id]})
    assert resp.get_json() == {"qualifier_ids": [qualifier_id]}

    modules = client.get("/api/modules").get_json()["modules"]
    assert [m["code"] for m in modules] == ["M1"]
    assert [c["code"] for c in modules[0]["children"]] == ["M1.1"]

    listed = client.get(f"/api/competencies?module_id={child_id}").get_json()["competencies"]
    assert [c["name"] for c in listed] == ["Prendre un rendez-vous"]

    resp = client.patch(f"/api/modules/{child_id}", json={"name": "Téléphone et mails"})
    assert resp.get_json()["module"]["name"] == "Téléphone et mails"
    assert resp.get_json()["module"]["code"] == "M1.1"

    assert client.delete(f"/api/modules/{root_id}").get_json() == {"success": True}
    assert client.get("/api/modules").get_json()["modules"] == []


def test_statistics_over_completed_evaluations(client, app, login, make_user, taxonomy):
    t = taxonomy
    make_user("sm@example.com", role="skill_master", first_name="Sam", last_name="Master")
    strong = make_user("paul.durand@example.com", first_name="Paul", last_name="Durand")
    weak = make_user("marc.roux@example.com", first_name="Marc", last_name="Roux")
    login(client, "sm@example.com")

    def evaluate(worker, level_index):
        evaluation_id = client.post("/api/evaluations", json={"worker_id": worker}).get_json()["id"]
        client.put(f"/api/evaluations/{evaluation_id}/results", json={"answers": {
            str(t["c1"]): {str(t["level"]): t["levels"][level_index]},
            str(t["c3"]): {str(t["level"]): t["levels"][level_index]},
        }})
        client.post(f"/api/evaluations/{evaluation_id}/complete")

    evaluate(strong, 3)
    evaluate(weak, 1)
    # drafts are ignored
    client.post("/api/evaluations", json={"worker_id": weak})

    stats = client.get("/api/statistics").get_json()
    m1 = next(m for m in stats["module_stats"] if m["module_code"] == "M1")
    # M1: 3/10 and 1/10, M2: 3/5 and 1/5
    assert (m1["min_score"], m1["max_score"], m1["avg_score"], m1["user_count"]) == (10.0, 30.0, 20.0, 2)
    summaries = stats["user_summaries"]
    assert [s["user_id"] for s in summaries] == [strong, weak]
    assert summaries[0]["overall_avg"] == 45.0
    assert summaries[1]["eval_count"] == 1

    worker = app.test_client()
    login(worker, "marc.roux@example.com")
    assert worker.get("/api/statistics").status_code == 403
    colleagues = worker.get("/api/colleagues").get_json()["colleagues"]
    assert [c["id"] for c in colleagues] == [strong]
    assert colleagues[0]["avg_score"] == 45.0

    detail = worker.get(f"/api/colleagues/{strong}").get_json()
    assert [p["actual"] for p in detail["radar"]] == [30.0, 60.0]
    assert worker.get("/api/colleagues/9999").status_code == 404


def test_workers_directory_filters(client, login, make_user):
    manager = make_user("claire.petit@example.com", role="manager")
    make_user("paul.durand@example.com", first_name="Paul", last_name="Durand", manager_id=manager)
    make_user("marc.roux@example.com", first_name="Marc", last_name="Roux")
    login(client, "claire.petit@example.com")

    everyone = client.get("/api/workers").get_json()["workers"]
    assert [w["last_name"] for w in everyone] == ["Durand", "Roux"]
    mine = client.get("/api/workers?my_team=1").get_json()["workers"]
    assert [w["last_name"] for w in mine] == ["Durand"]
    assert mine[0]["is_my_team"] is True
    found = client.get("/api/workers?q=rou").get_json()["workers"]
    assert [w["email"] for w in found] == ["marc.roux@example.com"]
