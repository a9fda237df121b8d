import secrets

from flask import current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from ..extensions import db
from ..models.profile import Profile, ROLES
from ..models.user import User
from ..utils.errors import ServiceError, get_scoped

RESET_SALT = "password-reset"


def email_taken(email):
    return User.query.filter(db.func.lower(User.email) == email.strip().lower()).first() is not None


def create_account(org_id, email, first_name, last_name, role="worker", password=None,
                   job_title=None, location_id=None, manager_id=None):
    """Create the auth account and its profile; flushes, the caller commits."""
    if role not in ROLES:
        raise ServiceError("Rôle invalide.")
    if email_taken(email):
        raise ServiceError("Utilisateur déjà existant", 409)

    user = User(org_id=org_id, email=email.strip())
    user.set_password(password or secrets.token_urlsafe(16))
    db.session.add(user)
    db.session.flush()

    profile = Profile(
        org_id=org_id,
        user_id=user.id,
        email=user.email,
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        role=role,
        job_title=job_title or None,
        location_id=location_id or None,
        manager_id=manager_id or None,
        is_active=True,
    )
    db.session.add(profile)
    db.session.flush()
    return profile


def _serializer():
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=RESET_SALT)


def make_reset_token(user):
    # the hash prefix invalidates the link once the password changed
    return _serializer().dumps({"uid": user.id, "h": user.password_hash[-12:]})


def load_reset_token(token):
    """Return the User a reset token belongs to, or None if invalid/expired."""
    try:
        data = _serializer().loads(token, max_age=current_app.config.get("PASSWORD_RESET_MAX_AGE", 7 * 24 * 3600))
    except SignatureExpired:
        return None
    except BadSignature:
        return None
    user = db.session.get(User, data.get("uid"))
    if user is None or user.password_hash[-12:] != data.get("h"):
        return None
    return user


EDITABLE_FIELDS = ("first_name", "last_name", "role", "job_title", "is_active", "manager_id", "location_id")


def update_profile(profile, updates):
    """Apply a whitelisted partial update; ids must point inside the profile's organization."""
    from ..models.location import Location

    unknown = set(updates) - set(EDITABLE_FIELDS)
    if unknown:
        raise ServiceError("Champ non modifiable: " + ", ".join(sorted(unknown)))
    if "role" in updates and updates["role"] not in ROLES:
        raise ServiceError("Rôle invalide.")
    for name in ("first_name", "last_name"):
        if name in updates and not (updates[name] or "").strip():
            raise ServiceError("Prénom requis" if name == "first_name" else "Nom requis")
    if updates.get("manager_id"):
        manager = get_scoped(Profile, updates["manager_id"], profile.org_id, "Manager introuvable.")
        if manager.id == profile.id:
            raise ServiceError("Un utilisateur ne peut pas être son propre manager.")
    if updates.get("location_id"):
        get_scoped(Location, updates["location_id"], profile.org_id, "Lieu introuvable.")

    for name, value in updates.items():
        if name in ("first_name", "last_name"):
            value = value.strip()
        elif name == "is_active":
            value = bool(value)
        elif name in ("manager_id", "location_id"):
            value = int(value) if value else None
        elif name == "job_title":
            value = value or None
        setattr(profile, name, value)
    db.session.commit()
    current_app.logger.info("profile %s updated: %s", profile.id, ", ".join(sorted(updates)))
    return profile


def can_edit_avatar(viewer, profile):
    if viewer.id == profile.id or viewer.role in ("super_admin", "skill_master"):
        return True
    return viewer.role == "manager" and viewer.manages(profile)


def upload_avatar(viewer, profile, file_storage):
    from . import storage

    if not can_edit_avatar(viewer, profile):
        raise ServiceError("Non autorisé", 403)
    storage.validate_upload(file_storage, storage.AVATAR_TYPES, "PNG, JPG ou WebP")
    ext = storage.extension_for(file_storage, "jpg")
    url = storage.save_file(file_storage, prefix=f"org-{profile.org_id}/avatars", name=f"{profile.id}.{ext}")
    if profile.avatar_url and profile.avatar_url != url:
        try:
            storage.delete_file(profile.avatar_url)
        except Exception:
            current_app.logger.exception("could not remove previous avatar of profile %s", profile.id)
    profile.avatar_url = url
    db.session.commit()
    return profile
