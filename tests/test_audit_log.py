import json
import os
from datetime import timedelta

from vaultshare import db
from vaultshare.models import AuditLog, utcnow
from vaultshare.services.invitations import InvitationService
from vaultshare.services.share_links import ShareLinkService
from vaultshare.utils.audit_log import audit_logger, init_audit_logging, log_action
from vaultshare.utils.scheduler import cleanup_old_audit_logs


def test_invitation_actions_are_audited(family_vault):
    invitation = InvitationService.create(family_vault.id, 'dave@example.com', 'view', 'alice')
    InvitationService.accept(invitation.token, 'dave')

    actions = [row.action for row in AuditLog.query.order_by(AuditLog.id).all()]
    assert actions == ['INVITATION_CREATED', 'INVITATION_ACCEPTED']

    accepted = AuditLog.query.filter_by(action='INVITATION_ACCEPTED').one()
    assert accepted.actor_id == 'dave'
    assert accepted.object_id == family_vault.id


def test_share_link_audit_never_records_secrets(family_vault):
    link = ShareLinkService.create(family_vault.id, 'alice', passcode='1234')
    token = link.token
    ShareLinkService.verify(token, 'wrong')
    ShareLinkService.verify(token, '1234')

    rows = AuditLog.query.order_by(AuditLog.id).all()
    assert [r.action for r in rows] == ['SHARE_LINK_CREATED', 'SHARE_LINK_DENIED', 'SHARE_LINK_ACCESSED']
    denied = rows[1]
    assert denied.success is False
    assert json.loads(denied.details)['reason'] == 'invalid_passcode'
    for row in rows:
        assert token not in (row.details or '')
        assert token != row.object_id
        assert '1234' not in (row.details or '')


def test_sensitive_details_are_masked(app):
    log_action('TEST', 'masking', additional_info={'passcode': '1234', 'reset_token': 'abc', 'role': 'view'},
               actor_id='alice')
    row = AuditLog.query.filter_by(action='TEST').one()
    details = json.loads(row.details)
    assert details == {'passcode': '***', 'reset_token': '***', 'role': 'view'}


def test_audit_lines_are_written_as_json(app, tmp_path):
    app.config['AUDIT_LOG_DIR'] = str(tmp_path)
    handler = init_audit_logging(app)
    try:
        log_action('TEST', 'file line', additional_info={'role': 'edit'}, actor_id='alice')
        handler.flush()
        with open(os.path.join(tmp_path, 'audit.log'), encoding='utf-8') as f:
            line = json.loads(f.readline())
        assert line['message'] == 'file line'
        assert line['action'] == 'TEST'
        assert line['actor_id'] == 'alice'
    finally:
        audit_logger.removeHandler(handler)
        handler.close()


def _old_and_new_rows():
    db.session.add_all([
        AuditLog(action='OLD', timestamp=utcnow() - timedelta(days=31)),
        AuditLog(action='RECENT', timestamp=utcnow() - timedelta(days=2)),
    ])
    db.session.commit()


def test_cleanup_audit_logs_command(app, runner):
    _old_and_new_rows()

    result = runner.invoke(args=['cleanup-audit-logs'])
    assert 'Deleted 1 old audit log entries' in result.output
    assert [r.action for r in AuditLog.query.all()] == ['RECENT']

    result = runner.invoke(args=['cleanup-audit-logs', '--days', '1'])
    assert 'Deleted 1 old audit log entries' in result.output
    assert AuditLog.query.count() == 0


def test_scheduled_cleanup_uses_retention_setting(app):
    app.config['AUDIT_RETENTION_DAYS'] = 30
    _old_and_new_rows()
    assert cleanup_old_audit_logs(app) == 1
    assert [r.action for r in AuditLog.query.all()] == ['RECENT']


def test_scheduler_registers_retention_job(app):
    from vaultshare.utils import scheduler as jobs

    sched = jobs.init_scheduler(app)
    try:
        assert jobs.init_scheduler(app) is sched
        assert sched.get_job(jobs.AUDIT_RETENTION_JOB_ID) is not None
    finally:
        jobs.shutdown_scheduler()
    assert jobs.scheduler is None
