from ..extensions import db
from .base import OrgScopedMixin

class WorkerComment(db.Model, OrgScopedMixin):
    __tablename__ = "worker_comments"

    id = db.Column(db.Integer, primary_key=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)

    author = db.relationship("Profile", foreign_keys=[author_id])

    def to_dict(self):
        return {
            "id": self.id,
            "worker_id": self.worker_id,
            "author_id": self.author_id,
            "author": {"first_name": self.author.first_name, "last_name": self.author.last_name,
                       "role": self.author.role} if self.author else None,
            "content": self.content,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
