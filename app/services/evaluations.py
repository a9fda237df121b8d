"""Evaluation workflow: creation, answer saving, completion and history.

Answers are exchanged as ``{competency_id: {qualifier_id: option_id}}``; a
``multiple_choice`` qualifier may also receive a list of option ids. JSON
object keys arrive as strings and are normalized to ints here.
"""
from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models.competency import Competency
from ..models.evaluation import (Evaluation, EvaluationComment, EvaluationResult,
                                 EvaluationResultQualifier, EvaluationSnapshot)
from ..models.job_profile import JobProfile
from ..models.profile import EVALUATOR_ROLES, Profile
from ..models.qualifier import Qualifier, QualifierOption
from ..models.worker_comment import WorkerComment
from ..utils.errors import ServiceError, get_scoped
from . import scoring

NOT_FOUND = 'Evaluation introuvable.'


def _require_evaluator(viewer, message='Acces refuse. Role requis pour evaluer.'):
    if viewer is None or viewer.role not in EVALUATOR_ROLES:
        raise ServiceError(message, 403)


def _require_team(viewer, worker, message):
    if viewer.role == 'manager' and not viewer.manages(worker):
        raise ServiceError(message, 403)


def _load(viewer, evaluation_id):
    evaluation = get_scoped(Evaluation, evaluation_id, viewer.org_id, NOT_FOUND)
    if viewer.role == 'worker' and evaluation.worker_id != viewer.id:
        raise ServiceError(NOT_FOUND, 404)
    return evaluation


def list_evaluations(viewer):
    q = Evaluation.query.filter_by(org_id=viewer.org_id)
    if viewer.role == 'worker':
        q = q.filter_by(worker_id=viewer.id)
    evaluations = q.order_by(Evaluation.created_at.desc(), Evaluation.id.desc()).all()

    team_ids = set()
    if viewer.role == 'manager':
        team_ids = {p.id for p in Profile.query.filter_by(org_id=viewer.org_id, manager_id=viewer.id).all()}

    rows = []
    for e in evaluations:
        d = e.to_dict()
        d['is_my_team'] = e.worker_id in team_ids
        rows.append(d)
    if team_ids:
        # stable: keeps the date order inside each group
        rows.sort(key=lambda r: not r['is_my_team'])
    return rows


def create_evaluation(viewer, worker_id, job_profile_id=None, title=None):
    _require_evaluator(viewer)
    if not worker_id:
        raise ServiceError('worker_id est requis.')
    worker = get_scoped(Profile, worker_id, viewer.org_id, 'Collaborateur introuvable.')
    _require_team(viewer, worker, 'Acces refuse. Vous ne pouvez evaluer que les membres de votre equipe.')
    if job_profile_id:
        get_scoped(JobProfile, job_profile_id, viewer.org_id, 'Profil métier introuvable.')

    evaluation = Evaluation(
        org_id=viewer.org_id,
        evaluator_id=viewer.id,
        worker_id=worker.id,
        job_profile_id=int(job_profile_id) if job_profile_id else None,
        title=(title or '').strip() or None,
        status='draft',
    )
    db.session.add(evaluation)
    db.session.commit()
    current_app.logger.info('evaluation %s created by profile %s for worker %s',
                            evaluation.id, viewer.id, worker.id)
    return evaluation


def get_evaluation(viewer, evaluation_id):
    evaluation = _load(viewer, evaluation_id)
    scores = scoring.get_module_scores(evaluation.id)
    return {
        'evaluation': evaluation.to_dict(),
        'results': [{'id': r.id, 'competency_id': r.competency_id} for r in evaluation.results],
        'answers': evaluation.answers_map(),
        'module_scores': scores,
        'radar': scoring.radar_data(scores),
        'overall': scoring.average_completion(scores),
    }


def normalize_answers(answers):
    """Coerce ids to int and option values to lists; raise on malformed input."""
    if not isinstance(answers, dict):
        raise ServiceError('Format de réponses invalide.')
    out = {}
    try:
        for cid, per_q in answers.items():
            if not isinstance(per_q, dict):
                raise ServiceError('Format de réponses invalide.')
            qmap = {}
            for qid, opts in per_q.items():
                if opts is None or opts == '' or opts == []:
                    continue
                values = opts if isinstance(opts, (list, tuple)) else [opts]
                qmap[int(qid)] = list(dict.fromkeys(int(o) for o in values))
            out[int(cid)] = qmap
    except (TypeError, ValueError):
        raise ServiceError('Format de réponses invalide.')
    return out


def _check_answers(org_id, answers):
    comp_ids = set(answers)
    q_ids = {qid for per_q in answers.values() for qid in per_q}
    opt_ids = {oid for per_q in answers.values() for opts in per_q.values() for oid in opts}

    if comp_ids:
        found = {c.id for c in Competency.query.filter(Competency.org_id == org_id,
                                                       Competency.id.in_(comp_ids)).all()}
        if comp_ids - found:
            raise ServiceError('Compétence introuvable.')
    qualifiers = {}
    if q_ids:
        qualifiers = {q.id: q for q in Qualifier.query.filter(Qualifier.org_id == org_id,
                                                              Qualifier.id.in_(q_ids)).all()}
        if q_ids - set(qualifiers):
            raise ServiceError('Qualificateur introuvable.')
    options = {}
    if opt_ids:
        options = {o.id: o for o in QualifierOption.query.filter(QualifierOption.id.in_(opt_ids)).all()}

    for per_q in answers.values():
        for qid, opts in per_q.items():
            if len(opts) > 1 and not qualifiers[qid].is_multiple:
                raise ServiceError('Une seule option autorisée pour ce qualificateur.')
            for oid in opts:
                option = options.get(oid)
                if option is None or option.qualifier_id != qid:
                    raise ServiceError('Option invalide pour ce qualificateur.')


def _write_answers(evaluation, answers):
    existing = {r.competency_id: r for r in evaluation.results}
    for cid, per_q in answers.items():
        result = existing.get(cid)
        if result is None:
            result = EvaluationResult(competency_id=cid)
            evaluation.results.append(result)
        # replaces the previous answers of this competency
        result.answers = [
            EvaluationResultQualifier(qualifier_id=qid, qualifier_option_id=oid)
            for qid, opts in per_q.items() for oid in opts
        ]


def save_results(viewer, evaluation_id, answers):
    _require_evaluator(viewer)
    evaluation = _load(viewer, evaluation_id)
    if evaluation.status == 'completed':
        raise ServiceError('Cette evaluation est deja terminee.')
    if viewer.role != 'super_admin' and evaluation.evaluator_id != viewer.id:
        raise ServiceError('Acces refuse. Vous ne pouvez modifier que vos propres evaluations.', 403)

    answers = normalize_answers(answers)
    _check_answers(evaluation.org_id, answers)
    if evaluation.status == 'draft':
        evaluation.status = 'in_progress'
    _write_answers(evaluation, answers)
    db.session.commit()
    return evaluation


def complete_evaluation(viewer, evaluation_id):
    _require_evaluator(viewer)
    evaluation = _load(viewer, evaluation_id)
    if viewer.role != 'super_admin' and evaluation.evaluator_id != viewer.id:
        raise ServiceError('Acces refuse. Vous ne pouvez completer que vos propres evaluations.', 403)
    evaluation.status = 'completed'
    evaluation.evaluated_at = datetime.utcnow()
    db.session.commit()
    current_app.logger.info('evaluation %s completed by profile %s', evaluation.id, viewer.id)
    return evaluation


def _prefill(evaluation):
    q = (Evaluation.query
         .filter(Evaluation.org_id == evaluation.org_id,
                 Evaluation.worker_id == evaluation.worker_id,
                 Evaluation.id != evaluation.id))
    if evaluation.job_profile_id:
        q = q.filter(Evaluation.job_profile_id == evaluation.job_profile_id)
    previous = (q.order_by(Evaluation.evaluated_at.is_(None), Evaluation.evaluated_at.desc(),
                           Evaluation.created_at.desc(), Evaluation.id.desc())
                .first())
    if previous is None:
        return 0
    for r in previous.results:
        evaluation.results.append(EvaluationResult(
            competency_id=r.competency_id,
            answers=[EvaluationResultQualifier(qualifier_id=a.qualifier_id,
                                               qualifier_option_id=a.qualifier_option_id)
                     for a in r.answers],
        ))
    return len(previous.results)


def get_or_create_continuous_evaluation(viewer, worker_id, job_profile_id=None):
    """Return the worker's continuous evaluation, creating and pre-filling it if needed."""
    _require_evaluator(viewer, 'Acces refuse.')
    worker = get_scoped(Profile, worker_id, viewer.org_id, 'Collaborateur introuvable.')
    _require_team(viewer, worker, 'Acces refuse. Ce collaborateur ne fait pas partie de votre equipe.')
    if job_profile_id:
        get_scoped(JobProfile, job_profile_id, viewer.org_id, 'Profil métier introuvable.')
        job_profile_id = int(job_profile_id)
    else:
        job_profile_id = None

    existing = (Evaluation.query
                .filter_by(org_id=viewer.org_id, worker_id=worker.id, is_continuous=True,
                           job_profile_id=job_profile_id)
                .order_by(Evaluation.id)
                .first())
    if existing is not None:
        return existing, False

    evaluation = Evaluation(
        org_id=viewer.org_id,
        evaluator_id=viewer.id,
        worker_id=worker.id,
        job_profile_id=job_profile_id,
        status='in_progress',
        is_continuous=True,
    )
    db.session.add(evaluation)
    db.session.commit()

    try:
        copied = _prefill(evaluation)
        db.session.commit()
        if copied:
            current_app.logger.info('continuous evaluation %s pre-filled with %s result(s)',
                                    evaluation.id, copied)
    except Exception:
        db.session.rollback()
        current_app.logger.exception('pre-fill of continuous evaluation %s failed', evaluation.id)
    return evaluation, True


def save_with_snapshot(viewer, evaluation_id, answers):
    """Save answers, stamp ``evaluated_at`` and record a snapshot of the recomputed scores."""
    _require_evaluator(viewer, 'Acces refuse.')
    evaluation = _load(viewer, evaluation_id)
    if evaluation.status == 'completed':
        raise ServiceError('Cette evaluation est deja terminee.')
    _require_team(viewer, evaluation.worker, 'Acces refuse. Ce collaborateur ne fait pas partie de votre equipe.')

    answers = normalize_answers(answers)
    _check_answers(evaluation.org_id, answers)
    _write_answers(evaluation, answers)
    evaluation.evaluated_at = datetime.utcnow()
    evaluation.status = 'in_progress'
    db.session.commit()

    module_scores = scoring.get_module_scores(evaluation.id)
    snapshot = EvaluationSnapshot(
        evaluation_id=evaluation.id,
        snapshot_by=viewer.id,
        scores={str(cid): {str(qid): opts for qid, opts in per_q.items()} for cid, per_q in answers.items()},
        module_scores=module_scores,
    )
    db.session.add(snapshot)
    db.session.commit()
    return evaluation, snapshot


def snapshot_history(viewer, evaluation_id):
    evaluation = _load(viewer, evaluation_id)
    snapshots = (EvaluationSnapshot.query
                 .filter_by(evaluation_id=evaluation.id)
                 .order_by(EvaluationSnapshot.created_at, EvaluationSnapshot.id)
                 .all())
    return [
        {
            'id': s.id,
            'created_at': s.created_at.isoformat() if s.created_at else None,
            'snapshot_by': s.snapshot_by,
            'author_name': s.author.full_name if s.author else None,
            'module_scores': s.module_scores or [],
            'overall_avg': scoring.average_completion(s.module_scores or []),
        }
        for s in snapshots
    ]


def _comment_text(content):
    text = (content or '').strip()
    if not text:
        raise ServiceError('Le commentaire ne peut pas être vide.')
    return text


COMMENT_DENIED = 'Accès refusé. Seuls les skill masters, managers et admins peuvent commenter.'


def list_comments(viewer, evaluation_id):
    evaluation = _load(viewer, evaluation_id)
    comments = (EvaluationComment.query.filter_by(evaluation_id=evaluation.id)
                .order_by(EvaluationComment.created_at, EvaluationComment.id).all())
    return [c.to_dict() for c in comments]


def add_comment(viewer, evaluation_id, content):
    _require_evaluator(viewer, COMMENT_DENIED)
    evaluation = _load(viewer, evaluation_id)
    comment = EvaluationComment(evaluation_id=evaluation.id, author_id=viewer.id, content=_comment_text(content))
    db.session.add(comment)
    db.session.commit()
    return comment


def list_worker_comments(viewer, worker_id):
    worker = get_scoped(Profile, worker_id, viewer.org_id, 'Collaborateur introuvable.')
    comments = (WorkerComment.query.filter_by(org_id=viewer.org_id, worker_id=worker.id)
                .order_by(WorkerComment.created_at.desc(), WorkerComment.id.desc()).all())
    return [c.to_dict() for c in comments]


def add_worker_comment(viewer, worker_id, content):
    _require_evaluator(viewer, COMMENT_DENIED)
    worker = get_scoped(Profile, worker_id, viewer.org_id, 'Collaborateur introuvable.')
    comment = WorkerComment(org_id=viewer.org_id, worker_id=worker.id, author_id=viewer.id,
                            content=_comment_text(content))
    db.session.add(comment)
    db.session.commit()
    return comment
