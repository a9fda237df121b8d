from .organization import Organization
from .user import User
from .profile import Profile
from .location import Location
from .module import Module, ModuleQualifier
from .competency import Competency
from .qualifier import Qualifier, QualifierOption
from .job_profile import JobProfile, JobProfileModule, JobProfileCompetencySetting, JobProfileQualifier, WorkerJobProfile
from .evaluation import Evaluation, EvaluationResult, EvaluationResultQualifier, EvaluationSnapshot, EvaluationComment
from .worker_comment import WorkerComment
from .setting import Setting
# base and mixins are imported by the above as needed
