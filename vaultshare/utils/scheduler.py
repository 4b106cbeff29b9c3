"""Background jobs: daily audit retention."""
import atexit
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

AUDIT_RETENTION_JOB_ID = 'audit_retention'

scheduler = None


def init_scheduler(app):
    """Start the scheduler once per process and register the retention job."""
    global scheduler

    if scheduler is not None:
        return scheduler

    scheduler = BackgroundScheduler(
        timezone='UTC',
        job_defaults={'coalesce': True, 'max_instances': 1},
    )
    scheduler.add_job(
        cleanup_old_audit_logs,
        trigger='cron',
        hour=3,
        minute=0,
        args=[app],
        id=AUDIT_RETENTION_JOB_ID,
        name='Delete audit rows past AUDIT_RETENTION_DAYS',
        replace_existing=True,
    )
    scheduler.start()
    atexit.register(shutdown_scheduler)
    logger.info("Background scheduler started (audit retention at 03:00 UTC)")
    return scheduler


def cleanup_old_audit_logs(app):
    """Job body; returns the number of AuditLog rows removed."""
    from vaultshare import db
    from vaultshare.utils.audit_log import cleanup_audit_logs

    retention_days = app.config.get('AUDIT_RETENTION_DAYS', 30)
    with app.app_context():
        try:
            deleted = cleanup_audit_logs(retention_days)
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Audit retention failed: {e}")
            return 0
    logger.info(f"Audit retention removed {deleted} rows older than {retention_days} days")
    return deleted


def shutdown_scheduler():
    global scheduler

    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Background scheduler stopped")
    scheduler = None
