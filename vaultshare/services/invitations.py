"""
Invitation lifecycle: create, lookup, accept, revoke, list.

An invitation is actionable only while ``accepted = false AND now < expires_at``.
That predicate is evaluated by the database at every lookup and again inside
the conditional update that flips ``accepted``; nothing caches it.
"""

import logging
import smtplib
from datetime import timedelta

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from vaultshare import db
from vaultshare.errors import Conflict, NotFound, ValidationError
from vaultshare.models import ROLE_OWNER, VaultInvitation, VaultMember, utcnow
from vaultshare.services.roles import MANAGE, require_role
from vaultshare.services.tokens import new_token
from vaultshare.utils import mailer, messages
from vaultshare.utils.audit_log import log_action
from vaultshare.utils.validators import validate_email_format, validate_grantable_role

logger = logging.getLogger(__name__)

DEFAULT_TTL_DAYS = 7


def _generate_unique_token():
    while True:
        token = new_token()
        if not VaultInvitation.query.filter_by(token=token).first():
            return token


class InvitationService:

    @staticmethod
    def create(vault_id: str, email: str, role: str, issuer_id: str) -> VaultInvitation:
        """Invite ``email`` to ``vault_id`` with ``role`` (edit or view)."""
        vault, _ = require_role(vault_id, issuer_id, MANAGE)
        role = validate_grantable_role(role)
        email = validate_email_format(email)
        if vault.is_personal:
            raise ValidationError(messages.VAULT_PERSONAL_NO_MEMBERS)

        ttl_days = current_app.config.get('INVITATION_TTL_DAYS', DEFAULT_TTL_DAYS)
        invitation = VaultInvitation(
            vault_id=vault.id,
            email=email,
            role=role,
            token=_generate_unique_token(),
            accepted=False,
            expires_at=utcnow() + timedelta(days=ttl_days),
            created_by_id=issuer_id,
        )
        try:
            db.session.add(invitation)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"InvitationService: failed to create invitation for vault {vault.id}: {e}")
            raise Conflict()

        logger.info(f"InvitationService: invitation {invitation.id} created for vault {vault.id}")
        log_action('INVITATION_CREATED', f'Invitation created for {email}', subject=invitation,
                   additional_info={'vault_id': vault.id, 'email': email, 'role': role}, actor_id=issuer_id)
        return invitation

    @staticmethod
    def lookup(token: str, now=None) -> VaultInvitation:
        """Return the invitation for ``token`` if it is still actionable."""
        now = now or utcnow()
        invitation = None
        if token:
            invitation = VaultInvitation.query.filter(
                VaultInvitation.token == token,
                VaultInvitation.accepted.is_(False),
                VaultInvitation.expires_at > now,
            ).populate_existing().first()
        if invitation is None:
            raise NotFound(messages.INVITATION_NOT_FOUND)
        return invitation

    @staticmethod
    def accept(token: str, user_id: str) -> VaultMember:
        """Grant the invited role to ``user_id`` and mark the invitation accepted.

        Both writes commit together or not at all. The accepted flag is set by
        a conditional update that re-checks the lifecycle predicate, so two
        concurrent accepts cannot both succeed.
        """
        now = utcnow()
        invitation = InvitationService.lookup(token, now)
        vault = invitation.vault
        invitation_id = invitation.id
        role = invitation.role

        if vault.is_personal:
            raise Conflict(messages.VAULT_PERSONAL_NO_MEMBERS)

        is_owner = user_id == vault.owner_id
        try:
            member = db.session.get(VaultMember, (vault.id, user_id))
            if member is None:
                member = VaultMember(vault_id=vault.id, user_id=user_id,
                                     role=ROLE_OWNER if is_owner else role)
                db.session.add(member)
            elif is_owner:
                member.role = ROLE_OWNER
            elif member.role != ROLE_OWNER:
                member.role = role
            db.session.flush()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"InvitationService: membership write failed for invitation {invitation_id}: {e}")
            raise Conflict(messages.INVITATION_ACCEPT_FAILED)

        try:
            result = db.session.execute(
                update(VaultInvitation)
                .where(VaultInvitation.id == invitation_id)
                .where(VaultInvitation.accepted.is_(False))
                .where(VaultInvitation.expires_at > now)
                .values(accepted=True)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                # accepted, revoked or expired since the lookup
                db.session.rollback()
                raise NotFound(messages.INVITATION_NOT_FOUND)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"InvitationService: failed to accept invitation {invitation_id}: {e}")
            raise Conflict(messages.INVITATION_ACCEPT_FAILED)

        logger.info(f"InvitationService: {user_id} joined vault {vault.id} via invitation {invitation_id}")
        log_action('INVITATION_ACCEPTED', f'Invitation {invitation_id} accepted', subject=vault,
                   additional_info={'invitation_id': invitation_id, 'role': member.role}, actor_id=user_id)
        return member

    @staticmethod
    def revoke(invitation_id: str, issuer_id: str) -> bool:
        """Delete an invitation. Returns False if it was already gone."""
        invitation = db.session.get(VaultInvitation, invitation_id) if invitation_id else None
        if invitation is None:
            return False
        vault, _ = require_role(invitation.vault_id, issuer_id, MANAGE)

        try:
            deleted = VaultInvitation.query.filter_by(id=invitation_id).delete(synchronize_session=False)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"InvitationService: failed to revoke invitation {invitation_id}: {e}")
            raise Conflict()

        if deleted:
            log_action('INVITATION_REVOKED', f'Invitation {invitation_id} revoked', subject=vault,
                       additional_info={'invitation_id': invitation_id}, actor_id=issuer_id)
        return bool(deleted)

    @staticmethod
    def list(vault_id: str, issuer_id: str):
        """All invitations of a vault, newest first, whatever their status."""
        vault, _ = require_role(vault_id, issuer_id, MANAGE)
        return VaultInvitation.query.filter_by(vault_id=vault.id).order_by(
            VaultInvitation.created_at.desc()).all()

    @staticmethod
    def list_for_email(email: str):
        """Pending invitations addressed to ``email``, newest first."""
        if not email:
            return []
        return VaultInvitation.query.filter(
            VaultInvitation.email == email.strip().lower(),
            VaultInvitation.accepted.is_(False),
            VaultInvitation.expires_at > utcnow(),
        ).order_by(VaultInvitation.created_at.desc()).all()

    @staticmethod
    def send_email(invitation: VaultInvitation, accept_url: str, issuer_id=None) -> bool:
        """Mail the accept link; a delivery failure leaves the invitation intact."""
        try:
            mailer.send_invitation_email(invitation, accept_url)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning(f"InvitationService: could not email invitation {invitation.id}: {e}")
            return False

        invitation.email_sent_at = utcnow()
        db.session.commit()
        log_action('INVITATION_EMAILED', f'Invitation {invitation.id} emailed', subject=invitation,
                   additional_info={'email': invitation.email}, actor_id=issuer_id)
        return True
