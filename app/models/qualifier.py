from ..extensions import db
from .base import OrgScopedMixin, TimestampMixin

QUALIFIER_TYPES = ("single_choice", "multiple_choice")


class Qualifier(db.Model, OrgScopedMixin, TimestampMixin):
    __tablename__ = "qualifiers"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    qualifier_type = db.Column(db.String(20), nullable=False, default="single_choice")
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_by = db.Column(db.Integer)  # profiles.id

    options = db.relationship("QualifierOption", back_populates="qualifier",
                              order_by="QualifierOption.sort_order", cascade="all, delete-orphan")

    @property
    def is_multiple(self):
        return self.qualifier_type == "multiple_choice"

    def max_value(self):
        """Best achievable score for one competency on this qualifier."""
        values = [o.value for o in self.options]
        if not values:
            return 0
        if self.is_multiple:
            return sum(v for v in values if v > 0)
        return max(values)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "qualifier_type": self.qualifier_type,
            "sort_order": self.sort_order,
            "is_active": self.is_active,
            "options": [o.to_dict() for o in self.options],
        }


class QualifierOption(db.Model, TimestampMixin):
    __tablename__ = "qualifier_options"

    id = db.Column(db.Integer, primary_key=True)
    qualifier_id = db.Column(db.Integer, db.ForeignKey("qualifiers.id", ondelete="CASCADE"), nullable=False, index=True)
    label = db.Column(db.String(200), nullable=False)
    value = db.Column(db.Integer, nullable=False, default=0)
    icon = db.Column(db.String(50))
    color = db.Column(db.String(20))
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    qualifier = db.relationship("Qualifier", back_populates="options")

    def to_dict(self):
        return {
            "id": self.id,
            "qualifier_id": self.qualifier_id,
            "label": self.label,
            "value": self.value,
            "icon": self.icon,
            "color": self.color,
            "sort_order": self.sort_order,
        }
