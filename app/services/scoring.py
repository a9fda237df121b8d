"""Module score aggregation for evaluations.

Scores are never stored as the source of truth: they are recomputed from the
evaluation's answers and the qualifier option values every time they are read.

For one module::

    actual         = sum(weight(c) * sum(value of selected option(s) of q))
    total_possible = sum(weight(c) * sum(max_value(q)))
    completion_pct = actual / total_possible * 100   (0 when nothing is possible)

over the module's applicable competencies ``c`` and their applicable
qualifiers ``q``.
"""
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from ..extensions import db
from ..models.competency import Competency
from ..models.evaluation import Evaluation, EvaluationResult, EvaluationResultQualifier
from ..models.job_profile import JobProfile
from ..models.module import Module, ModuleQualifier
from ..models.qualifier import Qualifier

FULL_MARK = 100


def round1(value):
    """Half-up rounding to one decimal (0.05 -> 0.1, unlike round())."""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def round_int(value):
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _load_taxonomy(org_id):
    modules = (Module.query.filter_by(org_id=org_id, is_active=True)
               .order_by(Module.sort_order, Module.code).all())
    module_ids = [m.id for m in modules]
    competencies = []
    module_links = {}
    if module_ids:
        competencies = (Competency.query
                        .filter(Competency.org_id == org_id, Competency.is_active.is_(True),
                                Competency.module_id.in_(module_ids))
                        .order_by(Competency.sort_order).all())
        for link in ModuleQualifier.query.filter(ModuleQualifier.module_id.in_(module_ids)).all():
            module_links.setdefault(link.module_id, set()).add(link.qualifier_id)
    qualifiers = {q.id: q for q in Qualifier.query.filter_by(org_id=org_id, is_active=True).all()}
    return modules, competencies, qualifiers, module_links


def _load_answers(evaluation_id):
    rows = (db.session.query(EvaluationResult.competency_id,
                             EvaluationResultQualifier.qualifier_id,
                             EvaluationResultQualifier.qualifier_option_id)
            .join(EvaluationResultQualifier, EvaluationResultQualifier.evaluation_result_id == EvaluationResult.id)
            .filter(EvaluationResult.evaluation_id == evaluation_id)
            .all())
    answers = {}
    for competency_id, qualifier_id, option_id in rows:
        answers.setdefault(competency_id, {}).setdefault(qualifier_id, set()).add(option_id)
    return answers


def aggregate_module_scores(modules, competencies, qualifiers, module_links, answers,
                            expected_by_module=None, profile_qualifier_ids=None, weights=None,
                            default_expected=None):
    """Pure aggregation over already loaded rows.

    ``expected_by_module`` is None when the evaluation has no job profile, and
    empty when its job profile configures no module: every module then gets
    ``default_expected``. A non-empty expectation map restricts the modules to
    the profile's ones plus any module that already holds answers; modules
    missing from the map report 0.
    """
    weights = weights or {}
    restrict = bool(expected_by_module)
    option_values = {}
    for q in qualifiers.values():
        for o in q.options:
            option_values[o.id] = (q.id, o.value)

    by_module = {}
    for c in competencies:
        by_module.setdefault(c.module_id, []).append(c)
    if restrict:
        # outside the profile, a module stays reachable only through answers
        by_module = {
            mid: comps for mid, comps in by_module.items()
            if mid in expected_by_module or any(answers.get(c.id) for c in comps)
        }

    out = []
    for module in modules:
        comps = by_module.get(module.id)
        if not comps:
            continue

        linked = module_links.get(module.id)
        q_ids = set(linked) if linked else set(qualifiers)
        if profile_qualifier_ids:
            q_ids &= set(profile_qualifier_ids)
        q_ids = [qid for qid in q_ids if qid in qualifiers]
        per_competency_max = sum(qualifiers[qid].max_value() for qid in q_ids)

        actual = 0
        total = 0
        for c in comps:
            w = weights.get(c.id, 1)
            total += w * per_competency_max
            given = answers.get(c.id, {})
            for qid in q_ids:
                values = [option_values[oid][1] for oid in given.get(qid, ())
                          if oid in option_values and option_values[oid][0] == qid]
                if not values:
                    continue
                if qualifiers[qid].qualifier_type == "multiple_choice":
                    actual += w * sum(values)
                else:
                    actual += w * max(values)

        pct = round1(actual * 100.0 / total) if total > 0 else 0.0
        if not restrict:
            expected = default_expected if default_expected is not None else 0
        else:
            expected = expected_by_module.get(module.id, 0)

        out.append({
            "module_id": module.id,
            "module_code": module.code,
            "module_name": module.name,
            "module_icon": module.icon,
            "module_color": module.color,
            "actual_score": round1(actual),
            "total_possible": round1(total),
            "completion_pct": pct,
            "expected_score": expected,
        })
    return out


def _scores_for(evaluation, taxonomy, default_expected):
    job_profile = None
    if evaluation.job_profile_id is not None:
        job_profile = db.session.get(JobProfile, evaluation.job_profile_id)
        if job_profile is None:
            return []

    modules, competencies, qualifiers, module_links = taxonomy
    expected = None
    profile_qualifier_ids = None
    weights = None
    if job_profile is not None:
        expected = job_profile.expected_by_module()
        profile_qualifier_ids = {link.qualifier_id for link in job_profile.qualifier_links}
        weights = {s.competency_id: s.weight for s in job_profile.competency_settings}

    return aggregate_module_scores(
        modules, competencies, qualifiers, module_links, _load_answers(evaluation.id),
        expected_by_module=expected, profile_qualifier_ids=profile_qualifier_ids,
        weights=weights, default_expected=default_expected,
    )


def get_module_scores(evaluation_id):
    """Module scores of one evaluation; [] when it (or its job profile) is gone."""
    evaluation = db.session.get(Evaluation, evaluation_id) if evaluation_id is not None else None
    if evaluation is None:
        return []
    default_expected = current_app.config.get("DEFAULT_EXPECTED_SCORE", 70)
    return _scores_for(evaluation, _load_taxonomy(evaluation.org_id), default_expected)


def get_batch_module_scores(evaluation_ids):
    """{evaluation_id: scores}; unknown ids are simply absent."""
    ids = list(dict.fromkeys(evaluation_ids or []))
    if not ids:
        return {}
    default_expected = current_app.config.get("DEFAULT_EXPECTED_SCORE", 70)
    taxonomies = {}
    out = {}
    for evaluation in Evaluation.query.filter(Evaluation.id.in_(ids)).all():
        if evaluation.org_id not in taxonomies:
            taxonomies[evaluation.org_id] = _load_taxonomy(evaluation.org_id)
        out[evaluation.id] = _scores_for(evaluation, taxonomies[evaluation.org_id], default_expected)
    return out


def average_completion(scores):
    if not scores:
        return None
    return round1(sum(s["completion_pct"] for s in scores) / len(scores))


def radar_data(scores):
    return [
        {
            "module": f"{s['module_code']} - {s['module_name']}",
            "module_id": s["module_id"],
            "actual": s["completion_pct"],
            "expected": s["expected_score"],
            "full_mark": FULL_MARK,
            "color": s.get("module_color"),
            "icon": s.get("module_icon"),
        }
        for s in scores
    ]
