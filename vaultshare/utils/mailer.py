"""
Outgoing mail for invitation links.

Delivery settings come from the MAIL_* config keys. Without a MAIL_SERVER the
message is only logged, which is what development and tests rely on.
"""

import logging
import smtplib
from email.message import EmailMessage

from flask import current_app

from vaultshare.utils import messages

logger = logging.getLogger(__name__)

DEFAULT_SENDER = 'no-reply@localhost'


def _smtp_settings(config):
    port = config.get('MAIL_PORT')
    try:
        port = int(port) if port else 0
    except (TypeError, ValueError):
        port = 0
    return {
        'server': config.get('MAIL_SERVER'),
        'port': port,
        'username': config.get('MAIL_USERNAME'),
        'password': config.get('MAIL_PASSWORD'),
        'use_tls': bool(config.get('MAIL_USE_TLS')),
        'use_ssl': bool(config.get('MAIL_USE_SSL')),
        'sender': config.get('MAIL_DEFAULT_SENDER') or config.get('MAIL_USERNAME') or DEFAULT_SENDER,
    }


def _deliver(settings, msg):
    if settings['use_ssl']:
        smtp = smtplib.SMTP_SSL(settings['server'], settings['port'])
    else:
        smtp = smtplib.SMTP(settings['server'], settings['port'])

    with smtp:
        if not settings['use_ssl'] and settings['use_tls']:
            smtp.starttls()
        if settings['username'] and settings['password']:
            smtp.login(settings['username'], settings['password'])
        smtp.send_message(msg)


def send_generic_email(to_address: str, subject: str, body: str) -> bool:
    """Send a plain-text email.

    Raises smtplib.SMTPException / OSError when the relay refuses or is
    unreachable; callers decide whether that is fatal.
    """
    settings = _smtp_settings(current_app.config)
    if not settings['server'] or not settings['port']:
        logger.info(f"Mail delivery disabled, not sending '{subject}' to {to_address}")
        return True

    msg = EmailMessage()
    msg['Subject'] = subject
    msg['From'] = settings['sender']
    msg['To'] = to_address
    msg.set_content(body)

    try:
        _deliver(settings, msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Error sending email to {to_address}: {e}")
        raise
    logger.info(f"Sent '{subject}' to {to_address}")
    return True


def send_invitation_email(invitation, accept_url: str) -> bool:
    """Mail the accept link of a vault invitation to its recipient."""
    vault_name = invitation.vault.name if invitation.vault else ''
    subject = str(messages.INVITATION_EMAIL_SUBJECT % {'vault': vault_name})
    body = str(messages.INVITATION_EMAIL_BODY % {
        'vault': vault_name,
        'role': invitation.role,
        'url': accept_url,
        'expires': invitation.expires_at.strftime('%Y-%m-%d %H:%M UTC'),
    })
    return send_generic_email(invitation.email, subject, body)
