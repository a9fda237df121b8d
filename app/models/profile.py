from ..extensions import db
from .base import OrgScopedMixin, TimestampMixin

ROLES = ("super_admin", "skill_master", "manager", "worker")
EVALUATOR_ROLES = ("super_admin", "skill_master", "manager")

ROLE_LABELS = {
    "super_admin": "Administrateur",
    "skill_master": "Skill Master",
    "manager": "Manager",
    "worker": "Collaborateur",
}


class Profile(db.Model, OrgScopedMixin, TimestampMixin):
    __tablename__ = "profiles"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    first_name = db.Column(db.String(120), nullable=False, default="")
    last_name = db.Column(db.String(120), nullable=False, default="")
    role = db.Column(db.String(20), nullable=False, default="worker", index=True)
    job_title = db.Column(db.String(200))
    avatar_url = db.Column(db.String(512))
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # team tree: a worker points at their manager
    manager_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"))
    job_profile_id = db.Column(db.Integer, db.ForeignKey("job_profiles.id", ondelete="SET NULL"))

    user = db.relationship("User", back_populates="profile")
    manager = db.relationship("Profile", remote_side=[id], backref="team_members")
    location = db.relationship("Location")
    job_profile = db.relationship("JobProfile")

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def manages(self, other):
        return other is not None and other.manager_id == self.id

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": self.role,
            "job_title": self.job_title,
            "avatar_url": f"/api/users/{self.id}/avatar" if self.avatar_url else None,
            "is_active": self.is_active,
            "manager_id": self.manager_id,
            "location_id": self.location_id,
            "location_name": self.location.name if self.location else None,
            "job_profile_id": self.job_profile_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<Profile id={self.id} email={self.email!r} role={self.role}>"
