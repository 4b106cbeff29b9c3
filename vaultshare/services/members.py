import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from vaultshare import db
from vaultshare.errors import Conflict, Forbidden, NotFound, ValidationError
from vaultshare.models import Profile, VaultMember
from vaultshare.services.roles import MANAGE, READ, require_role, resolve_role, get_vault_or_404
from vaultshare.utils import messages
from vaultshare.utils.audit_log import log_action
from vaultshare.utils.validators import validate_grantable_role

logger = logging.getLogger(__name__)


class MembershipService:
    """Explicit (vault, user, role) grants of family and team vaults."""

    @staticmethod
    def list(vault_id: str, actor_id: str):
        """Members ordered by join date, each paired with its profile (or None)."""
        vault, _ = require_role(vault_id, actor_id, READ)
        members = VaultMember.query.filter_by(vault_id=vault.id).order_by(VaultMember.joined_at.asc()).all()
        profiles = {}
        if members:
            profiles = {p.user_id: p for p in Profile.query.filter(
                Profile.user_id.in_([m.user_id for m in members])).all()}
        return [(m, profiles.get(m.user_id)) for m in members]

    @staticmethod
    def add(vault_id: str, actor_id: str, user_id: str, role: str) -> VaultMember:
        vault, _ = require_role(vault_id, actor_id, MANAGE)
        role = validate_grantable_role(role)
        if vault.is_personal:
            raise ValidationError(messages.VAULT_PERSONAL_NO_MEMBERS)
        if not user_id or user_id == vault.owner_id:
            raise ValidationError(messages.MEMBER_CANNOT_CHANGE_OWNER, field='user_id')
        if db.session.get(VaultMember, (vault.id, user_id)) is not None:
            raise Conflict(messages.MEMBER_ALREADY_EXISTS)

        member = VaultMember(vault_id=vault.id, user_id=user_id, role=role)
        try:
            db.session.add(member)
            db.session.commit()
        except IntegrityError:
            # lost a race with another insert of the same pair
            db.session.rollback()
            raise Conflict(messages.MEMBER_ALREADY_EXISTS)
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"MembershipService: failed to add {user_id} to {vault.id}: {e}")
            raise Conflict()

        log_action('MEMBER_ADDED', f'Member {user_id} added as {role}', subject=vault,
                   additional_info={'user_id': user_id, 'role': role}, actor_id=actor_id)
        return member

    @staticmethod
    def update_role(vault_id: str, actor_id: str, user_id: str, role: str) -> VaultMember:
        vault, _ = require_role(vault_id, actor_id, MANAGE)
        role = validate_grantable_role(role)
        if user_id == vault.owner_id:
            raise ValidationError(messages.MEMBER_CANNOT_CHANGE_OWNER, field='user_id')

        member = db.session.get(VaultMember, (vault.id, user_id))
        if member is None:
            raise NotFound(messages.MEMBER_NOT_FOUND)
        previous = member.role
        member.role = role
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"MembershipService: failed to change role of {user_id} in {vault.id}: {e}")
            raise Conflict()

        log_action('MEMBER_ROLE_CHANGED', f'Member {user_id} role changed to {role}', subject=vault,
                   additional_info={'user_id': user_id, 'from': previous, 'to': role}, actor_id=actor_id)
        return member

    @staticmethod
    def remove(vault_id: str, actor_id: str, user_id: str) -> bool:
        """Remove a member. Returns False when there was nothing to remove.

        The vault's ``owner_id`` is never removable.
        """
        vault, _ = require_role(vault_id, actor_id, MANAGE)
        if user_id == vault.owner_id:
            raise ValidationError(messages.MEMBER_CANNOT_CHANGE_OWNER, field='user_id')
        return MembershipService._delete(vault, user_id, actor_id)

    @staticmethod
    def leave(vault_id: str, actor_id: str) -> bool:
        """A non-owner member removes itself from a vault."""
        vault = get_vault_or_404(vault_id)
        if resolve_role(vault, actor_id) is None:
            raise Forbidden()
        if actor_id == vault.owner_id:
            raise ValidationError(messages.MEMBER_OWNER_CANNOT_LEAVE)
        return MembershipService._delete(vault, actor_id, actor_id)

    @staticmethod
    def _delete(vault, user_id, actor_id) -> bool:
        deleted = VaultMember.query.filter_by(vault_id=vault.id, user_id=user_id).delete(synchronize_session=False)
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"MembershipService: failed to remove {user_id} from {vault.id}: {e}")
            raise Conflict()

        if deleted:
            log_action('MEMBER_REMOVED', f'Member {user_id} removed', subject=vault,
                       additional_info={'user_id': user_id}, actor_id=actor_id)
        return bool(deleted)
