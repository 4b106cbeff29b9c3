"""
Vault records.

Non-personal vaults get an explicit ``owner`` membership row when created;
personal vaults rely on ``owner_id`` alone. The role resolver handles both.
"""

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError

from vaultshare import db
from vaultshare.errors import Conflict, ValidationError
from vaultshare.models import ROLE_OWNER, Vault, VaultMember
from vaultshare.services.roles import MANAGE, READ, require_role, resolve_role
from vaultshare.utils import messages
from vaultshare.utils.audit_log import log_action
from vaultshare.utils.validators import validate_vault_name, validate_vault_type

logger = logging.getLogger(__name__)


class VaultService:

    @staticmethod
    def create(actor_id: str, name: str, vault_type: str = 'personal') -> Vault:
        name = validate_vault_name(name)
        vault_type = validate_vault_type(vault_type)

        vault = Vault(name=name, type=vault_type, owner_id=actor_id)
        try:
            db.session.add(vault)
            db.session.flush()
            if vault_type != 'personal':
                db.session.add(VaultMember(vault_id=vault.id, user_id=actor_id, role=ROLE_OWNER))
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"VaultService: failed to create vault for {actor_id}: {e}")
            raise Conflict()

        logger.info(f"VaultService: {actor_id} created {vault_type} vault {vault.id}")
        log_action('VAULT_CREATED', f'Vault {vault.name} created', subject=vault,
                   additional_info={'type': vault_type}, actor_id=actor_id)
        return vault

    @staticmethod
    def get(vault_id: str, actor_id: str):
        """Return ``(vault, role)`` for any actor holding a role."""
        return require_role(vault_id, actor_id, READ)

    @staticmethod
    def list_for_user(actor_id: str):
        """Every vault the actor owns or belongs to, newest first.

        Each entry is ``(vault, role, member_count)``.
        """
        member_vault_ids = select(VaultMember.vault_id).where(VaultMember.user_id == actor_id)
        vaults = Vault.query.filter(
            or_(Vault.owner_id == actor_id, Vault.id.in_(member_vault_ids))
        ).order_by(Vault.created_at.desc()).all()

        counts = {}
        if vaults:
            counts = dict(db.session.execute(
                select(VaultMember.vault_id, func.count())
                .where(VaultMember.vault_id.in_([v.id for v in vaults]))
                .group_by(VaultMember.vault_id)
            ).all())

        result = []
        for vault in vaults:
            role = resolve_role(vault, actor_id)
            if role is None:
                continue
            if vault.is_personal:
                member_count = 1
            else:
                member_count = counts.get(vault.id, 0)
                # the owner counts even without an explicit row
                if db.session.get(VaultMember, (vault.id, vault.owner_id)) is None:
                    member_count += 1
            result.append((vault, role, member_count))
        return result

    @staticmethod
    def update(vault_id: str, actor_id: str, name=None, vault_type=None) -> Vault:
        vault, _ = require_role(vault_id, actor_id, MANAGE)
        changes = {}

        if name is not None:
            vault.name = validate_vault_name(name)
            changes['name'] = vault.name

        if vault_type is not None and vault_type != vault.type:
            vault_type = validate_vault_type(vault_type)
            if vault_type == 'personal':
                others = VaultMember.query.filter(
                    VaultMember.vault_id == vault.id,
                    VaultMember.user_id != vault.owner_id
                ).count()
                if others:
                    db.session.rollback()
                    raise ValidationError(messages.VAULT_HAS_MEMBERS, field='type')
                VaultMember.query.filter_by(vault_id=vault.id).delete(synchronize_session=False)
            elif vault.is_personal:
                db.session.add(VaultMember(vault_id=vault.id, user_id=vault.owner_id, role=ROLE_OWNER))
            vault.type = vault_type
            changes['type'] = vault_type

        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"VaultService: failed to update vault {vault_id}: {e}")
            raise Conflict()

        if changes:
            log_action('VAULT_UPDATED', f'Vault {vault.name} updated', subject=vault,
                       additional_info=changes, actor_id=actor_id)
        return vault

    @staticmethod
    def delete(vault_id: str, actor_id: str) -> None:
        """Delete a vault; members, items, invitations and share links go with it."""
        vault, _ = require_role(vault_id, actor_id, MANAGE)
        name = vault.name
        try:
            db.session.delete(vault)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"VaultService: failed to delete vault {vault_id}: {e}")
            raise Conflict()

        logger.info(f"VaultService: {actor_id} deleted vault {vault_id}")
        log_action('VAULT_DELETED', f'Vault {name} deleted', additional_info={'vault_id': vault_id},
                   actor_id=actor_id)
