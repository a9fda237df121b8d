from ..extensions import db
from .base import OrgScopedMixin, TimestampMixin

class Competency(db.Model, OrgScopedMixin, TimestampMixin):
    __tablename__ = "competencies"

    id = db.Column(db.Integer, primary_key=True)
    module_id = db.Column(db.Integer, db.ForeignKey("modules.id", ondelete="CASCADE"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    external_id = db.Column(db.String(64))  # reference in the customer's HR referential
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_by = db.Column(db.Integer)  # profiles.id

    module = db.relationship("Module", back_populates="competencies")

    def to_dict(self):
        return {
            "id": self.id,
            "module_id": self.module_id,
            "name": self.name,
            "description": self.description,
            "external_id": self.external_id,
            "sort_order": self.sort_order,
            "is_active": self.is_active,
        }
