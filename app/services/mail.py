from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail
from flask import current_app


def send_mail(to_email, subject, html):
    sg = SendGridAPIClient(api_key=current_app.config['SENDGRID_API_KEY'])
    message = Mail(from_email=(current_app.config['MAIL_FROM'], current_app.config['MAIL_FROM_NAME']),
                   to_emails=to_email,
                   subject=subject,
                   html_content=html)
    resp = sg.send(message)
    return resp.status_code, getattr(resp, 'headers', None)


def invitation_html(first_name, link, org_name=None):
    where = f" sur l'espace {org_name}" if org_name else ""
    return (
        f"<p>Bonjour {first_name},</p>"
        f"<p>Un compte a été créé pour vous{where}.</p>"
        f"<p>Choisissez votre mot de passe en suivant ce lien :<br>"
        f"<a href=\"{link}\">{link}</a></p>"
        "<p>Ce lien est valable 7 jours.</p>"
    )
