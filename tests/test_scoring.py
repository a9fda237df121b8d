from types import SimpleNamespace

from app.extensions import db
from app.models.evaluation import Evaluation, EvaluationResult, EvaluationResultQualifier
from app.models.job_profile import JobProfile, JobProfileCompetencySetting, JobProfileModule
from app.models.qualifier import Qualifier, QualifierOption
from app.services.scoring import (aggregate_module_scores, average_completion, get_batch_module_scores,
                                  get_module_scores, radar_data, round1, round_int)


def _evaluation(org_id, worker_id, job_profile_id=None):
    e = Evaluation(org_id=org_id, evaluator_id=worker_id, worker_id=worker_id,
                   job_profile_id=job_profile_id, status="in_progress")
    db.session.add(e)
    db.session.commit()
    return e


def _answer(evaluation, competency_id, qualifier_id, *option_ids):
    result = next((r for r in evaluation.results if r.competency_id == competency_id), None)
    if result is None:
        result = EvaluationResult(competency_id=competency_id)
        evaluation.results.append(result)
    for oid in option_ids:
        result.answers.append(EvaluationResultQualifier(qualifier_id=qualifier_id, qualifier_option_id=oid))
    db.session.commit()


def _by_code(scores):
    return {s["module_code"]: s for s in scores}


def test_round_half_up():
    assert round1(0.05) == 0.1
    assert round1(2.25) == 2.3
    assert round1(33.333) == 33.3
    assert round_int(2.5) == 3
    assert round_int(71.5) == 72


def test_zero_answers_report_zero_percent(app, org_id, make_user, taxonomy):
    worker = make_user("lea.martin@example.com")
    with app.app_context():
        e = _evaluation(org_id, worker)
        scores = _by_code(get_module_scores(e.id))
        assert scores["M1"]["completion_pct"] == 0.0
        assert scores["M1"]["actual_score"] == 0.0
        assert scores["M1"]["total_possible"] == 10.0
        # no job profile: default expectation
        assert scores["M1"]["expected_score"] == 70
        assert average_completion(list(scores.values())) == 0.0


def test_single_and_multiple_choice_values(app, org_id, make_user, taxonomy):
    worker = make_user("lea.martin@example.com")
    t = taxonomy
    with app.app_context():
        e = _evaluation(org_id, worker)
        _answer(e, t["c1"], t["level"], t["levels"][3])
        _answer(e, t["c1"], t["contexts"], t["ctx"][0], t["ctx"][1])
        _answer(e, t["c2"], t["level"], t["levels"][1])
        scores = _by_code(get_module_scores(e.id))
        # (3 + 2) + 1 out of 10
        assert scores["M1"]["actual_score"] == 6.0
        assert scores["M1"]["completion_pct"] == 60.0
        assert scores["M2"]["completion_pct"] == 0.0
        assert [s["module_code"] for s in get_module_scores(e.id)] == ["M1", "M2"]


def test_missing_evaluation_or_job_profile_gives_empty_list(app, org_id, make_user, taxonomy):
    worker = make_user("lea.martin@example.com")
    with app.app_context():
        assert get_module_scores(999) == []
        assert get_module_scores(None) == []
        e = _evaluation(org_id, worker, job_profile_id=4242)
        assert get_module_scores(e.id) == []
        assert get_batch_module_scores([e.id, 999]) == {e.id: []}


def test_job_profile_expectations_and_weights(app, org_id, make_user, taxonomy):
    worker = make_user("lea.martin@example.com")
    t = taxonomy
    with app.app_context():
        jp = JobProfile(org_id=org_id, name="Assistant(e)")
        jp.modules.append(JobProfileModule(module_id=t["module"], expected_score=80))
        jp.competency_settings.append(JobProfileCompetencySetting(competency_id=t["c1"], weight=3,
                                                                  expected_score=90))
        db.session.add(jp)
        db.session.commit()

        e = _evaluation(org_id, worker, job_profile_id=jp.id)
        _answer(e, t["c1"], t["level"], t["levels"][2])
        scores = _by_code(get_module_scores(e.id))
        # M2 is outside the profile and unanswered
        assert set(scores) == {"M1"}
        # weight 3 on c1: actual 3*2, total 3*5 + 1*5
        assert scores["M1"]["actual_score"] == 6.0
        assert scores["M1"]["total_possible"] == 20.0
        assert scores["M1"]["completion_pct"] == 30.0
        assert scores["M1"]["expected_score"] == 80

        _answer(e, t["c3"], t["level"], t["levels"][3])
        scores = _by_code(get_module_scores(e.id))
        assert scores["M2"]["expected_score"] == 0
        assert scores["M2"]["completion_pct"] == 60.0


def test_job_profile_without_modules_uses_default_expectation(app, org_id, make_user, taxonomy):
    worker = make_user("lea.martin@example.com")
    with app.app_context():
        jp = JobProfile(org_id=org_id, name="Accueil")
        db.session.add(jp)
        db.session.commit()

        e = _evaluation(org_id, worker, job_profile_id=jp.id)
        scores = get_module_scores(e.id)
        assert [s["module_code"] for s in scores] == ["M1", "M2"]
        assert [s["expected_score"] for s in scores] == [70, 70]


def _qualifier(qid, qtype, values, first_option_id):
    options = [QualifierOption(id=first_option_id + i, value=v) for i, v in enumerate(values)]
    return Qualifier(id=qid, qualifier_type=qtype, options=options)


def test_aggregate_without_possible_points_is_zero():
    module = SimpleNamespace(id=1, code="M1", name="Vide", icon=None, color=None)
    competency = SimpleNamespace(id=10, module_id=1)
    empty = Qualifier(id=5, qualifier_type="single_choice", options=[])
    out = aggregate_module_scores([module], [competency], {5: empty}, {}, {}, default_expected=70)
    assert out[0]["total_possible"] == 0.0
    assert out[0]["completion_pct"] == 0.0


def test_aggregate_ignores_option_of_another_qualifier():
    module = SimpleNamespace(id=1, code="M1", name="Accueil", icon="ear", color="#ff0000")
    competency = SimpleNamespace(id=10, module_id=1)
    q1 = _qualifier(1, "single_choice", [0, 4], 100)
    q2 = _qualifier(2, "single_choice", [0, 1], 200)
    # option 201 belongs to q2 but is keyed under q1
    answers = {10: {1: {201}, 2: {201}}}
    out = aggregate_module_scores([module], [competency], {1: q1, 2: q2}, {}, answers, default_expected=70)
    assert out[0]["actual_score"] == 1.0
    assert out[0]["total_possible"] == 5.0
    assert out[0]["completion_pct"] == 20.0


def test_module_links_restrict_qualifiers():
    module = SimpleNamespace(id=1, code="M1", name="Accueil", icon=None, color=None)
    competency = SimpleNamespace(id=10, module_id=1)
    q1 = _qualifier(1, "single_choice", [0, 4], 100)
    q2 = _qualifier(2, "multiple_choice", [2, 3, -1], 200)
    out = aggregate_module_scores([module], [competency], {1: q1, 2: q2}, {1: {2}}, {}, default_expected=70)
    assert out[0]["total_possible"] == 5.0


def test_qualifier_max_value():
    assert _qualifier(1, "single_choice", [0, 1, 4], 100).max_value() == 4
    # negative options never add to the ceiling of a multiple choice
    assert _qualifier(2, "multiple_choice", [2, 3, -1], 200).max_value() == 5
    assert _qualifier(3, "multiple_choice", [], 300).max_value() == 0


def test_radar_points():
    scores = [{"module_id": 1, "module_code": "M1", "module_name": "Accueil", "module_icon": "ear",
               "module_color": "#123456", "completion_pct": 42.5, "expected_score": 70}]
    point = radar_data(scores)[0]
    assert point["module"] == "M1 - Accueil"
    assert point["actual"] == 42.5
    assert point["expected"] == 70
    assert point["full_mark"] == 100
    assert average_completion([]) is None
