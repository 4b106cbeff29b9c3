import click

from vaultshare.utils.audit_log import cleanup_audit_logs


def register_commands(app):
    @app.cli.command('cleanup-audit-logs')
    @click.option('--days', type=int, default=None,
                  help='Delete audit rows older than this many days (defaults to AUDIT_RETENTION_DAYS).')
    def cleanup_audit_logs_command(days):
        """Delete old audit log rows."""
        retention_days = days if days is not None else app.config.get('AUDIT_RETENTION_DAYS', 30)
        deleted = cleanup_audit_logs(retention_days)
        click.echo(f'Deleted {deleted} old audit log entries')
