from ..extensions import db
from .base import OrgScopedMixin, TimestampMixin


class JobProfile(db.Model, OrgScopedMixin, TimestampMixin):
    __tablename__ = "job_profiles"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_by = db.Column(db.Integer)  # profiles.id

    modules = db.relationship("JobProfileModule", back_populates="job_profile", cascade="all, delete-orphan")
    competency_settings = db.relationship("JobProfileCompetencySetting", cascade="all, delete-orphan")
    qualifier_links = db.relationship("JobProfileQualifier", cascade="all, delete-orphan")

    def expected_by_module(self):
        return {m.module_id: m.expected_score for m in self.modules}

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "is_active": self.is_active,
        }


class JobProfileModule(db.Model, TimestampMixin):
    """Expected completion (0-100) of a module for a job profile."""
    __tablename__ = "job_profile_modules"

    id = db.Column(db.Integer, primary_key=True)
    job_profile_id = db.Column(db.Integer, db.ForeignKey("job_profiles.id", ondelete="CASCADE"), nullable=False)
    module_id = db.Column(db.Integer, db.ForeignKey("modules.id", ondelete="CASCADE"), nullable=False)
    expected_score = db.Column(db.Integer, nullable=False, default=0)

    job_profile = db.relationship("JobProfile", back_populates="modules")

    __table_args__ = (
        db.UniqueConstraint("job_profile_id", "module_id", name="uq_job_profile_modules"),
    )

    def to_dict(self):
        return {"module_id": self.module_id, "expected_score": self.expected_score}


class JobProfileCompetencySetting(db.Model, TimestampMixin):
    __tablename__ = "job_profile_competency_settings"

    id = db.Column(db.Integer, primary_key=True)
    job_profile_id = db.Column(db.Integer, db.ForeignKey("job_profiles.id", ondelete="CASCADE"), nullable=False)
    competency_id = db.Column(db.Integer, db.ForeignKey("competencies.id", ondelete="CASCADE"), nullable=False)
    weight = db.Column(db.Integer, nullable=False, default=1)
    expected_score = db.Column(db.Integer, nullable=False, default=70)

    __table_args__ = (
        db.UniqueConstraint("job_profile_id", "competency_id", name="uq_job_profile_competency_settings"),
    )

    def to_dict(self):
        return {"competency_id": self.competency_id, "weight": self.weight, "expected_score": self.expected_score}


class JobProfileQualifier(db.Model, TimestampMixin):
    __tablename__ = "job_profile_qualifiers"

    id = db.Column(db.Integer, primary_key=True)
    job_profile_id = db.Column(db.Integer, db.ForeignKey("job_profiles.id", ondelete="CASCADE"), nullable=False)
    qualifier_id = db.Column(db.Integer, db.ForeignKey("qualifiers.id", ondelete="CASCADE"), nullable=False)

    __table_args__ = (
        db.UniqueConstraint("job_profile_id", "qualifier_id", name="uq_job_profile_qualifiers"),
    )


class WorkerJobProfile(db.Model, OrgScopedMixin, TimestampMixin):
    __tablename__ = "worker_job_profiles"

    id = db.Column(db.Integer, primary_key=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    job_profile_id = db.Column(db.Integer, db.ForeignKey("job_profiles.id", ondelete="CASCADE"), nullable=False)
    assigned_evaluator_id = db.Column(db.Integer, db.ForeignKey("profiles.id"))

    job_profile = db.relationship("JobProfile")

    __table_args__ = (
        db.UniqueConstraint("worker_id", "job_profile_id", name="uq_worker_job_profiles"),
    )
