from ..extensions import db
from .base import TimestampMixin

class Organization(db.Model, TimestampMixin):
    """Tenant. Every other table carries an org_id pointing here."""
    __tablename__ = "organizations"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<Organization id={self.id} name={self.name!r}>"
