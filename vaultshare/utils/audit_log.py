"""
Audit logging for sensitive vault operations.

Each action is written twice: as a JSON line through the ``vaultshare.audit``
logger (daily rotating file when AUDIT_LOG_DIR is configured) and as a compact
AuditLog row for quick queries. Neither write may break the caller.
"""

import json
import logging
import os
from logging.handlers import TimedRotatingFileHandler

from flask import request, has_request_context
from pythonjsonlogger import jsonlogger

from vaultshare import db
from vaultshare.models import AuditLog, utcnow

AUDIT_LOGGER_NAME = 'vaultshare.audit'
SENSITIVE_KEYS = ('password', 'passcode', 'token', 'secret')

audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
logger = logging.getLogger(__name__)


def init_audit_logging(app):
    """Attach a JSON file handler to the audit logger when AUDIT_LOG_DIR is set."""
    log_dir = app.config.get('AUDIT_LOG_DIR')
    audit_logger.setLevel(logging.INFO)
    if not log_dir:
        return None

    os.makedirs(log_dir, exist_ok=True)
    filename = os.path.abspath(os.path.join(log_dir, 'audit.log'))
    for existing in audit_logger.handlers:
        if getattr(existing, 'baseFilename', None) == filename:
            return existing

    handler = TimedRotatingFileHandler(filename, when='midnight', backupCount=app.config.get('AUDIT_RETENTION_DAYS', 30),
                                       encoding='utf-8')
    handler.setFormatter(jsonlogger.JsonFormatter('%(asctime)s %(levelname)s %(name)s %(message)s'))
    audit_logger.addHandler(handler)
    return handler


def _mask(additional_info):
    masked = {}
    for k, v in (additional_info or {}).items():
        if any(key in k.lower() for key in SENSITIVE_KEYS):
            masked[k] = '***'
        else:
            masked[k] = v
    return masked


def _build_log_record(action: str, description: str, subject=None, additional_info: dict = None,
                      actor_id=None, success: bool = True):
    record = {
        'timestamp': utcnow().isoformat() + 'Z',
        'action': action,
        'description': description,
        'actor_id': actor_id,
        'subject_type': None,
        'subject_id': None,
        'ip': None,
        'details': None,
        'success': bool(success),
    }

    if has_request_context():
        record['ip'] = request.remote_addr

    if subject is not None:
        record['subject_type'] = subject.__class__.__name__
        subject_id = getattr(subject, 'id', None)
        if subject_id is None and hasattr(subject, 'token'):
            # share links are keyed by token; never log the token itself
            subject_id = f"{subject.token[:6]}..."
        record['subject_id'] = subject_id

    if additional_info:
        record['details'] = _mask(additional_info)

    return record


def log_action(action: str, description: str, subject=None, additional_info: dict = None,
               actor_id=None, success: bool = True):
    """Generic audit action writer.

    Example: log_action('INVITATION_REVOKED', 'Invitation revoked', subject=inv, actor_id=user_id)
    """
    rec = _build_log_record(action, description, subject=subject, additional_info=additional_info,
                            actor_id=actor_id, success=success)
    try:
        audit_logger.info(description, extra={k: v for k, v in rec.items() if k != 'description'})
    except Exception:
        logger.exception('Failed to write audit log line')

    log_action_db(rec)


def log_action_db(rec: dict):
    """Record a short audit entry in the database (useful for quick queries/alerts).

    Retention/cleanup is handled by scheduled jobs (AUDIT_RETENTION_DAYS).
    """
    try:
        entry = AuditLog(
            actor_id=rec['actor_id'],
            ip=rec['ip'],
            action=rec['action'],
            object_type=rec['subject_type'],
            object_id=str(rec['subject_id']) if rec['subject_id'] is not None else None,
            details=json.dumps(rec['details'], ensure_ascii=False, default=str) if rec['details'] else None,
            success=rec['success'],
        )
        db.session.add(entry)
        db.session.commit()
        return entry
    except Exception:
        logger.exception('Failed to write DB audit entry')
        db.session.rollback()
        return None


def cleanup_audit_logs(retention_days: int) -> int:
    """Delete AuditLog rows older than ``retention_days``. Returns the count."""
    from datetime import timedelta

    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = AuditLog.query.filter(AuditLog.timestamp < cutoff).delete(synchronize_session=False)
    db.session.commit()
    return deleted
