"""Organization-wide statistics, colleague summaries and the workers directory."""
from ..extensions import db
from ..models.evaluation import Evaluation
from ..models.job_profile import WorkerJobProfile
from ..models.profile import Profile
from ..utils.errors import ServiceError
from .scoring import average_completion, get_batch_module_scores, get_module_scores, radar_data, round1


def _mean(values):
    return round1(sum(values) / len(values)) if values else 0.0


def global_statistics(org_id):
    """Per-module and per-user aggregates over completed evaluations."""
    evaluations = Evaluation.query.filter_by(org_id=org_id, status='completed').all()
    if not evaluations:
        return {'module_stats': [], 'user_summaries': []}

    batch = get_batch_module_scores([e.id for e in evaluations])

    module_scores = {}   # module_id -> {'code', 'name', 'scores', 'users'}
    users = {}           # worker_id -> summary being built
    for e in evaluations:
        worker = e.worker
        user = users.get(e.worker_id)
        if user is None:
            user = users[e.worker_id] = {
                'user_id': e.worker_id,
                'first_name': worker.first_name if worker else '',
                'last_name': worker.last_name if worker else '',
                'email': worker.email if worker else '',
                'location_name': worker.location.name if worker and worker.location else None,
                'eval_ids': set(),
                'modules': {},
            }
        user['eval_ids'].add(e.id)
        for s in batch.get(e.id, []):
            m = module_scores.setdefault(s['module_id'], {'code': s['module_code'], 'name': s['module_name'],
                                                          'scores': [], 'users': set()})
            m['scores'].append(s['completion_pct'])
            m['users'].add(e.worker_id)
            um = user['modules'].setdefault(s['module_id'], {'code': s['module_code'], 'name': s['module_name'],
                                                             'scores': []})
            um['scores'].append(s['completion_pct'])

    module_stats = [
        {
            'module_id': mid,
            'module_code': m['code'],
            'module_name': m['name'],
            'avg_score': _mean(m['scores']),
            'min_score': round1(min(m['scores'])),
            'max_score': round1(max(m['scores'])),
            'user_count': len(m['users']),
        }
        for mid, m in module_scores.items()
    ]
    module_stats.sort(key=lambda r: (r['module_code'] or '', r['module_id']))

    summaries = []
    for user in users.values():
        modules = [{'module_code': m['code'], 'module_name': m['name'], 'avg_score': _mean(m['scores'])}
                   for m in user['modules'].values()]
        summaries.append({
            'user_id': user['user_id'],
            'first_name': user['first_name'],
            'last_name': user['last_name'],
            'email': user['email'],
            'location_name': user['location_name'],
            'overall_avg': _mean([m['avg_score'] for m in modules]),
            'eval_count': len(user['eval_ids']),
            'modules': modules,
        })
    summaries.sort(key=lambda r: r['overall_avg'], reverse=True)
    return {'module_stats': module_stats, 'user_summaries': summaries}


def latest_completed_evaluation(worker_id):
    return (Evaluation.query.filter_by(worker_id=worker_id, status='completed')
            .order_by(Evaluation.evaluated_at.is_(None), Evaluation.evaluated_at.desc(), Evaluation.id.desc())
            .first())


def latest_evaluation(worker_id):
    return (Evaluation.query.filter_by(worker_id=worker_id)
            .order_by(Evaluation.evaluated_at.is_(None), Evaluation.evaluated_at.desc(),
                      Evaluation.created_at.desc(), Evaluation.id.desc())
            .first())


def list_colleagues(viewer):
    profiles = (Profile.query
                .filter(Profile.org_id == viewer.org_id, Profile.role == 'worker',
                        Profile.is_active.is_(True), Profile.id != viewer.id)
                .order_by(Profile.last_name, Profile.first_name)
                .all())
    counts = dict(
        db.session.query(Evaluation.worker_id, db.func.count(Evaluation.id))
        .filter(Evaluation.org_id == viewer.org_id, Evaluation.status == 'completed')
        .group_by(Evaluation.worker_id)
        .all()
    )
    out = []
    for p in profiles:
        latest = latest_completed_evaluation(p.id)
        out.append({
            'id': p.id,
            'first_name': p.first_name,
            'last_name': p.last_name,
            'email': p.email,
            'avatar_url': f'/api/users/{p.id}/avatar' if p.avatar_url else None,
            'location_name': p.location.name if p.location else None,
            'avg_score': average_completion(get_module_scores(latest.id)) if latest else None,
            'eval_count': counts.get(p.id, 0),
        })
    return out


def colleague_profile(viewer, colleague_id):
    profile = Profile.query.filter_by(id=colleague_id, org_id=viewer.org_id, role='worker', is_active=True).first()
    if profile is None:
        raise ServiceError('Collègue introuvable.', 404)
    latest = latest_completed_evaluation(profile.id)
    radar = radar_data(get_module_scores(latest.id)) if latest else []
    return {
        'profile': {
            'first_name': profile.first_name,
            'last_name': profile.last_name,
            'email': profile.email,
            'avatar_url': f'/api/users/{profile.id}/avatar' if profile.avatar_url else None,
            'location_name': profile.location.name if profile.location else None,
        },
        'radar': radar,
        'eval_count': Evaluation.query.filter_by(worker_id=profile.id).count(),
        'job_profile_name': latest.job_profile.name if latest and latest.job_profile else None,
    }


def workers_directory(viewer, search=None, location_id=None, job_profile_id=None, my_team=False):
    q = Profile.query.filter(Profile.org_id == viewer.org_id, Profile.role == 'worker',
                             Profile.is_active.is_(True))
    if search:
        like = f"%{search.strip().lower()}%"
        q = q.filter(db.or_(db.func.lower(Profile.first_name).like(like),
                            db.func.lower(Profile.last_name).like(like),
                            db.func.lower(Profile.email).like(like)))
    if location_id:
        q = q.filter(Profile.location_id == int(location_id))
    if job_profile_id:
        assigned = db.session.query(WorkerJobProfile.worker_id).filter(
            WorkerJobProfile.job_profile_id == int(job_profile_id))
        q = q.filter(Profile.id.in_(assigned))
    if my_team:
        q = q.filter(Profile.manager_id == viewer.id)
    workers = q.order_by(Profile.last_name, Profile.first_name).all()

    out = []
    for w in workers:
        d = w.to_dict()
        d['is_my_team'] = w.manager_id == viewer.id
        d['job_profiles'] = [a.job_profile.name for a in
                             WorkerJobProfile.query.filter_by(worker_id=w.id).order_by(WorkerJobProfile.id).all()]
        out.append(d)
    return out


def worker_dashboard(worker):
    """Latest evaluation of a worker with its radar, for the personal dashboard."""
    latest = latest_evaluation(worker.id)
    if latest is None:
        return {'evaluation': None, 'module_scores': [], 'radar': [], 'overall': None}
    scores = get_module_scores(latest.id)
    return {
        'evaluation': latest.to_dict(),
        'module_scores': scores,
        'radar': radar_data(scores),
        'overall': average_completion(scores),
    }
