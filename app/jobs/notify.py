from flask import current_app

from ..extensions import db
from ..models.organization import Organization
from ..models.profile import Profile
from ..services.accounts import make_reset_token
from ..services.mail import invitation_html, send_mail


def send_account_invite(profile_id: int):
    """Mail a password-setup link to a newly created account. Returns the HTTP status or None."""
    profile = db.session.get(Profile, profile_id)
    if profile is None or profile.user is None:
        current_app.logger.warning('invite skipped: profile %s not found', profile_id)
        return None
    if not current_app.config.get('SENDGRID_API_KEY'):
        current_app.logger.info('invite for %s not sent: SENDGRID_API_KEY is not set', profile.email)
        return None

    token = make_reset_token(profile.user)
    link = f"{current_app.config['APP_BASE_URL'].rstrip('/')}/auth/reset/{token}"
    org = db.session.get(Organization, profile.org_id)
    status, _ = send_mail(profile.email, 'Votre accès CompétencesPro',
                          invitation_html(profile.first_name, link, org.name if org else None))
    current_app.logger.info('invite sent to %s (status %s)', profile.email, status)
    return status
