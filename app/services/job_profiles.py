"""Job profile configuration and worker assignment."""
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models.competency import Competency
from ..models.job_profile import (JobProfile, JobProfileCompetencySetting, JobProfileModule,
                                  JobProfileQualifier, WorkerJobProfile)
from ..models.module import Module
from ..models.profile import Profile
from ..models.qualifier import Qualifier
from ..utils.errors import ServiceError, get_scoped
from .scoring import round_int

DEFAULT_WEIGHT = 1
DEFAULT_EXPECTED = 70


def _int_in_range(value, low, high, message):
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ServiceError(message)
    if value < low or value > high:
        raise ServiceError(message)
    return value


def module_average(competency_ids, settings):
    """Weight-averaged expected score of a module, rounded half-up; 0 without competencies."""
    total_weight = 0
    weighted = 0
    for cid in competency_ids:
        s = settings.get(cid) or {}
        w = s.get('weight', DEFAULT_WEIGHT)
        total_weight += w
        weighted += s.get('expected_score', DEFAULT_EXPECTED) * w
    if total_weight <= 0:
        return 0
    return round_int(weighted / total_weight)


def job_profile_detail(job_profile):
    d = job_profile.to_dict()
    d['modules'] = [m.to_dict() for m in job_profile.modules]
    d['competency_settings'] = [s.to_dict() for s in job_profile.competency_settings]
    d['qualifier_ids'] = sorted(link.qualifier_id for link in job_profile.qualifier_links)
    return d


def configure_job_profile(job_profile, module_ids, competency_settings=None, qualifier_ids=None):
    """Replace the module selection, competency settings and qualifier links.

    ``competency_settings`` maps competency id to ``{'weight', 'expected_score'}``;
    competencies left out keep weight 1 and expectation 70.
    """
    org_id = job_profile.org_id
    module_ids = {int(m) for m in (module_ids or [])}
    modules = Module.query.filter(Module.org_id == org_id, Module.id.in_(module_ids)).all() if module_ids else []
    if len(modules) != len(module_ids):
        raise ServiceError('Module introuvable.')

    settings = {}
    for cid, s in (competency_settings or {}).items():
        s = s or {}
        settings[int(cid)] = {
            'weight': _int_in_range(s.get('weight', DEFAULT_WEIGHT), 1, 1000, 'Le poids doit être un entier >= 1.'),
            'expected_score': _int_in_range(s.get('expected_score', DEFAULT_EXPECTED), 0, 100,
                                            'Le score attendu doit être compris entre 0 et 100.'),
        }

    qualifier_ids = {int(q) for q in (qualifier_ids or [])}
    if qualifier_ids:
        found = Qualifier.query.filter(Qualifier.org_id == org_id, Qualifier.id.in_(qualifier_ids)).count()
        if found != len(qualifier_ids):
            raise ServiceError('Qualificateur introuvable.')

    competencies = []
    if module_ids:
        competencies = Competency.query.filter(Competency.org_id == org_id,
                                               Competency.is_active.is_(True),
                                               Competency.module_id.in_(module_ids)).all()
    by_module = {}
    for c in competencies:
        by_module.setdefault(c.module_id, []).append(c.id)

    # modules
    existing_modules = {m.module_id: m for m in job_profile.modules}
    for mid, row in existing_modules.items():
        if mid not in module_ids:
            job_profile.modules.remove(row)
    for mid in module_ids:
        score = module_average(by_module.get(mid, []), settings)
        row = existing_modules.get(mid)
        if row is None:
            job_profile.modules.append(JobProfileModule(module_id=mid, expected_score=score))
        else:
            row.expected_score = score

    # competency settings: only for competencies of the selected modules
    wanted = {cid for ids in by_module.values() for cid in ids}
    existing_settings = {s.competency_id: s for s in job_profile.competency_settings}
    for cid, row in existing_settings.items():
        if cid not in wanted:
            job_profile.competency_settings.remove(row)
    for cid in wanted:
        s = settings.get(cid, {'weight': DEFAULT_WEIGHT, 'expected_score': DEFAULT_EXPECTED})
        row = existing_settings.get(cid)
        if row is None:
            job_profile.competency_settings.append(JobProfileCompetencySetting(competency_id=cid, **s))
        else:
            row.weight = s['weight']
            row.expected_score = s['expected_score']

    linked = {link.qualifier_id: link for link in job_profile.qualifier_links}
    for qid, link in linked.items():
        if qid not in qualifier_ids:
            job_profile.qualifier_links.remove(link)
    for qid in sorted(qualifier_ids - set(linked)):
        job_profile.qualifier_links.append(JobProfileQualifier(qualifier_id=qid))
    db.session.commit()
    current_app.logger.info('job profile %s configured: %s module(s), %s qualifier(s)',
                            job_profile.id, len(module_ids), len(qualifier_ids))
    return job_profile


def set_module_expected_score(job_profile, module_id, score):
    module = get_scoped(Module, module_id, job_profile.org_id, 'Module introuvable.')
    score = _int_in_range(score, 0, 100, 'Le score attendu doit être compris entre 0 et 100.')
    row = JobProfileModule.query.filter_by(job_profile_id=job_profile.id, module_id=module.id).first()
    if row is None:
        row = JobProfileModule(job_profile_id=job_profile.id, module_id=module.id)
        db.session.add(row)
    row.expected_score = score
    db.session.commit()
    return row


def _sync_worker_title(worker):
    latest = (WorkerJobProfile.query.filter_by(worker_id=worker.id)
              .order_by(WorkerJobProfile.created_at.desc(), WorkerJobProfile.id.desc())
              .first())
    if latest is None:
        worker.job_title = None
        worker.job_profile_id = None
    else:
        worker.job_title = latest.job_profile.name
        worker.job_profile_id = latest.job_profile_id


def assign_job_profile(viewer, worker_id, job_profile_id):
    if not job_profile_id:
        raise ServiceError('jobProfileId est requis.')
    worker = get_scoped(Profile, worker_id, viewer.org_id, 'Collaborateur introuvable.')
    job_profile = get_scoped(JobProfile, job_profile_id, viewer.org_id, 'Profil métier introuvable.')

    db.session.add(WorkerJobProfile(org_id=viewer.org_id, worker_id=worker.id,
                                    job_profile_id=job_profile.id, assigned_evaluator_id=viewer.id))
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ServiceError('Ce profil métier est déjà attribué', 409)

    worker.job_title = job_profile.name
    worker.job_profile_id = job_profile.id
    db.session.commit()
    current_app.logger.info('job profile %s assigned to worker %s by %s', job_profile.id, worker.id, viewer.id)


def unassign_job_profile(viewer, worker_id, job_profile_id):
    if not job_profile_id:
        raise ServiceError('jobProfileId est requis.')
    worker = get_scoped(Profile, worker_id, viewer.org_id, 'Collaborateur introuvable.')
    try:
        jp_id = int(job_profile_id)
    except (TypeError, ValueError):
        raise ServiceError('jobProfileId est requis.')
    WorkerJobProfile.query.filter_by(worker_id=worker.id, job_profile_id=jp_id).delete()
    db.session.flush()
    _sync_worker_title(worker)
    db.session.commit()


def worker_job_profiles(worker):
    rows = (WorkerJobProfile.query.filter_by(worker_id=worker.id)
            .order_by(WorkerJobProfile.created_at, WorkerJobProfile.id).all())
    return [{'job_profile_id': r.job_profile_id, 'name': r.job_profile.name,
             'assigned_evaluator_id': r.assigned_evaluator_id} for r in rows]
