from ..extensions import db
from .base import OrgScopedMixin, TimestampMixin

class Location(db.Model, OrgScopedMixin, TimestampMixin):
    __tablename__ = "locations"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    address = db.Column(db.String(255))
    city = db.Column(db.String(120))
    postal_code = db.Column(db.String(20))
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "city": self.city,
            "postal_code": self.postal_code,
            "is_active": self.is_active,
        }
