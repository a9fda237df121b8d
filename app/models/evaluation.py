from ..extensions import db
from .base import OrgScopedMixin, TimestampMixin

EVALUATION_STATUSES = ("draft", "in_progress", "completed")


class Evaluation(db.Model, OrgScopedMixin, TimestampMixin):
    __tablename__ = "evaluations"

    id = db.Column(db.Integer, primary_key=True)
    evaluator_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False)
    worker_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False, index=True)
    job_profile_id = db.Column(db.Integer, db.ForeignKey("job_profiles.id", ondelete="SET NULL"))
    title = db.Column(db.String(255))
    notes = db.Column(db.Text)
    status = db.Column(db.String(20), nullable=False, default="draft")  # draft/in_progress/completed
    # the always-open "current" evaluation of a worker (one per job profile)
    is_continuous = db.Column(db.Boolean, nullable=False, default=False)
    evaluated_at = db.Column(db.DateTime)

    evaluator = db.relationship("Profile", foreign_keys=[evaluator_id])
    worker = db.relationship("Profile", foreign_keys=[worker_id])
    job_profile = db.relationship("JobProfile")
    results = db.relationship("EvaluationResult", back_populates="evaluation", cascade="all, delete-orphan")
    snapshots = db.relationship("EvaluationSnapshot", back_populates="evaluation",
                                order_by="EvaluationSnapshot.created_at", cascade="all, delete-orphan")
    comments = db.relationship("EvaluationComment", order_by="EvaluationComment.created_at",
                               cascade="all, delete-orphan")

    def answers_map(self):
        """{competency_id: {qualifier_id: [option_id, ...]}}"""
        out = {}
        for r in self.results:
            per_q = out.setdefault(r.competency_id, {})
            for a in r.answers:
                per_q.setdefault(a.qualifier_id, []).append(a.qualifier_option_id)
        return out

    def to_dict(self):
        return {
            "id": self.id,
            "evaluator_id": self.evaluator_id,
            "evaluator_name": self.evaluator.full_name if self.evaluator else None,
            "worker_id": self.worker_id,
            "worker_name": self.worker.full_name if self.worker else None,
            "job_profile_id": self.job_profile_id,
            "job_profile_name": self.job_profile.name if self.job_profile else None,
            "title": self.title,
            "notes": self.notes,
            "status": self.status,
            "is_continuous": self.is_continuous,
            "evaluated_at": self.evaluated_at.isoformat() if self.evaluated_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class EvaluationResult(db.Model, TimestampMixin):
    __tablename__ = "evaluation_results"

    id = db.Column(db.Integer, primary_key=True)
    evaluation_id = db.Column(db.Integer, db.ForeignKey("evaluations.id", ondelete="CASCADE"), nullable=False)
    competency_id = db.Column(db.Integer, db.ForeignKey("competencies.id", ondelete="CASCADE"), nullable=False)

    evaluation = db.relationship("Evaluation", back_populates="results")
    answers = db.relationship("EvaluationResultQualifier", back_populates="result", cascade="all, delete-orphan")

    __table_args__ = (
        db.UniqueConstraint("evaluation_id", "competency_id", name="uq_evaluation_results"),
    )


class EvaluationResultQualifier(db.Model):
    __tablename__ = "evaluation_result_qualifiers"

    id = db.Column(db.Integer, primary_key=True)
    evaluation_result_id = db.Column(db.Integer, db.ForeignKey("evaluation_results.id", ondelete="CASCADE"), nullable=False)
    qualifier_id = db.Column(db.Integer, db.ForeignKey("qualifiers.id", ondelete="CASCADE"), nullable=False)
    qualifier_option_id = db.Column(db.Integer, db.ForeignKey("qualifier_options.id", ondelete="CASCADE"), nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    result = db.relationship("EvaluationResult", back_populates="answers")


class EvaluationSnapshot(db.Model):
    """Immutable copy of answers and computed module scores, one per save."""
    __tablename__ = "evaluation_snapshots"

    id = db.Column(db.Integer, primary_key=True)
    evaluation_id = db.Column(db.Integer, db.ForeignKey("evaluations.id", ondelete="CASCADE"), nullable=False, index=True)
    snapshot_by = db.Column(db.Integer, db.ForeignKey("profiles.id"))
    scores = db.Column(db.JSON)
    module_scores = db.Column(db.JSON)
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)

    evaluation = db.relationship("Evaluation", back_populates="snapshots")
    author = db.relationship("Profile")


class EvaluationComment(db.Model):
    __tablename__ = "evaluation_comments"

    id = db.Column(db.Integer, primary_key=True)
    evaluation_id = db.Column(db.Integer, db.ForeignKey("evaluations.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)

    author = db.relationship("Profile")

    def to_dict(self):
        return {
            "id": self.id,
            "evaluation_id": self.evaluation_id,
            "author_id": self.author_id,
            "author": {"first_name": self.author.first_name, "last_name": self.author.last_name,
                       "role": self.author.role} if self.author else None,
            "content": self.content,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
