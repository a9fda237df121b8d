from ..extensions import db
from flask_login import UserMixin
from .base import OrgScopedMixin, TimestampMixin
from werkzeug.security import generate_password_hash, check_password_hash

class User(db.Model, UserMixin, OrgScopedMixin, TimestampMixin):
    """Authentication account. Role and directory data live on Profile."""
    __tablename__ = "users"
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)

    profile = db.relationship("Profile", back_populates="user", uselist=False)

    def set_password(self, raw):
        self.password_hash = generate_password_hash(raw)

    def check_password(self, raw):
        return check_password_hash(self.password_hash, raw)

    @property
    def role(self):
        return self.profile.role if self.profile else None

    @property
    def is_active(self):
        # Flask-Login refuses inactive accounts at login
        return bool(self.profile and self.profile.is_active)
