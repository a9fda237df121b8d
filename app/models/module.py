from ..extensions import db
from .base import OrgScopedMixin, TimestampMixin


class Module(db.Model, OrgScopedMixin, TimestampMixin):
    """Competency category. Nesting is one level deep (parent -> children)."""
    __tablename__ = "modules"

    id = db.Column(db.Integer, primary_key=True)
    parent_id = db.Column(db.Integer, db.ForeignKey("modules.id", ondelete="CASCADE"))
    code = db.Column(db.String(20), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    icon = db.Column(db.String(50))
    color = db.Column(db.String(20))
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_by = db.Column(db.Integer)  # profiles.id

    children = db.relationship("Module", backref=db.backref("parent", remote_side=[id]),
                               order_by="Module.sort_order", cascade="all, delete-orphan")
    competencies = db.relationship("Competency", back_populates="module",
                                   order_by="Competency.sort_order", cascade="all, delete-orphan")
    qualifier_links = db.relationship("ModuleQualifier", cascade="all, delete-orphan")

    def to_dict(self, with_children=False):
        d = {
            "id": self.id,
            "parent_id": self.parent_id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "color": self.color,
            "sort_order": self.sort_order,
            "is_active": self.is_active,
            "competency_count": len(self.competencies),
        }
        if with_children:
            d["children"] = [c.to_dict() for c in self.children]
        return d


class ModuleQualifier(db.Model, TimestampMixin):
    __tablename__ = "module_qualifiers"
    id = db.Column(db.Integer, primary_key=True)
    module_id = db.Column(db.Integer, db.ForeignKey("modules.id", ondelete="CASCADE"), nullable=False)
    qualifier_id = db.Column(db.Integer, db.ForeignKey("qualifiers.id", ondelete="CASCADE"), nullable=False)

    __table_args__ = (
        db.UniqueConstraint("module_id", "qualifier_id", name="uq_module_qualifiers"),
    )
