"""
Share-link access engine.

A share link is an anonymous, read-only capability over a vault's items,
limited by any combination of expiry, view quota and passcode. Verification
checks every active limit, then spends one view with a conditional UPDATE that
re-checks the quota inside the database. That UPDATE is the only correctness
boundary under concurrent access: if it touches no row the request lost the
race for the last view and is denied.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from vaultshare import db
from vaultshare.errors import Conflict, ValidationError
from vaultshare.models import VaultItem, VaultShareLink, utcnow
from vaultshare.services.passcodes import get_hasher
from vaultshare.services.roles import MANAGE, require_role
from vaultshare.services.tokens import new_token
from vaultshare.utils import messages
from vaultshare.utils.audit_log import log_action
from vaultshare.utils.validators import parse_datetime, validate_max_views

logger = logging.getLogger(__name__)

DENIED_INVALID = 'invalid'
DENIED_EXPIRED = 'expired'
DENIED_EXHAUSTED = 'exhausted'
DENIED_PASSCODE_REQUIRED = 'passcode_required'
DENIED_INVALID_PASSCODE = 'invalid_passcode'

DENIAL_MESSAGES = {
    DENIED_INVALID: messages.SHARE_DENIED_INVALID,
    DENIED_EXPIRED: messages.SHARE_DENIED_EXPIRED,
    DENIED_EXHAUSTED: messages.SHARE_DENIED_EXHAUSTED,
    DENIED_PASSCODE_REQUIRED: messages.SHARE_DENIED_PASSCODE_REQUIRED,
    DENIED_INVALID_PASSCODE: messages.SHARE_DENIED_INVALID_PASSCODE,
}


@dataclass(frozen=True)
class SharedItem:
    """Read-only copy of a vault item as seen through a share link."""
    title: str
    username: Optional[str]
    password: str
    notes: Optional[str]
    tags: Tuple[str, ...]
    created_at: datetime

    @classmethod
    def from_item(cls, item: VaultItem) -> 'SharedItem':
        return cls(
            title=item.title,
            username=item.username,
            password=item.password,
            notes=item.notes,
            tags=tuple(item.tags or ()),
            created_at=item.created_at,
        )

    def to_dict(self):
        return {
            'title': self.title,
            'username': self.username,
            'password': self.password,
            'notes': self.notes,
            'tags': list(self.tags),
            'created_at': self.created_at.isoformat() + 'Z',
        }


@dataclass(frozen=True)
class GrantedView:
    vault_id: str
    vault_name: str
    vault_type: str
    items: Tuple[SharedItem, ...]
    views_remaining: Optional[int] = None
    granted = True

    def to_dict(self):
        return {
            'vault': {'id': self.vault_id, 'name': self.vault_name, 'type': self.vault_type},
            'items': [item.to_dict() for item in self.items],
            'views_remaining': self.views_remaining,
        }


@dataclass(frozen=True)
class Denied:
    reason: str
    granted = False

    @property
    def message(self):
        return DENIAL_MESSAGES[self.reason]

    def to_dict(self):
        return {'error': 'denied', 'reason': self.reason, 'message': str(self.message)}


def _generate_unique_token():
    while True:
        token = new_token()
        if db.session.get(VaultShareLink, token) is None:
            return token


def _coerce_passcode(passcode):
    # numeric passcodes may arrive as JSON numbers
    if passcode is None or isinstance(passcode, str):
        return passcode
    return str(passcode)


def _short(token):
    return f"{token[:6]}..." if token else '<empty>'


class ShareLinkService:

    @staticmethod
    def create(vault_id: str, issuer_id: str, expires_at=None, max_views=None,
               passcode: Optional[str] = None) -> VaultShareLink:
        """Mint a share link. Expiry, view quota and passcode are each optional."""
        vault, _ = require_role(vault_id, issuer_id, MANAGE)
        expires_at = parse_datetime(expires_at)
        if expires_at is not None and expires_at <= utcnow():
            raise ValidationError(messages.VALIDATION_EXPIRY_IN_PAST, field='expires_at')
        max_views = validate_max_views(max_views)
        passcode = _coerce_passcode(passcode)

        link = VaultShareLink(
            token=_generate_unique_token(),
            vault_id=vault.id,
            passcode_hash=get_hasher().hash(passcode) if passcode else None,
            max_views=max_views,
            views_used=0,
            expires_at=expires_at,
            created_by_id=issuer_id,
        )
        try:
            db.session.add(link)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"ShareLinkService: failed to create share link for vault {vault.id}: {e}")
            raise Conflict()

        logger.info(f"ShareLinkService: share link {_short(link.token)} created for vault {vault.id}")
        log_action('SHARE_LINK_CREATED', 'Share link created', subject=vault, actor_id=issuer_id,
                   additional_info={'protected': link.has_passcode, 'max_views': max_views,
                                    'expires_at': expires_at.isoformat() if expires_at else None})
        return link

    @staticmethod
    def verify(token: str, passcode: Optional[str] = None):
        """Check a presented token and spend one view.

        Returns GrantedView on success, Denied(reason) otherwise.
        """
        now = utcnow()
        passcode = _coerce_passcode(passcode)
        link = None
        if token:
            link = VaultShareLink.query.filter_by(token=token).populate_existing().first()

        if link is None:
            return ShareLinkService._deny(DENIED_INVALID, token)
        if link.is_expired(now):
            return ShareLinkService._deny(DENIED_EXPIRED, token, link.vault_id)
        if link.is_exhausted():
            return ShareLinkService._deny(DENIED_EXHAUSTED, token, link.vault_id)

        hasher = None
        if link.passcode_hash:
            if not passcode:
                return ShareLinkService._deny(DENIED_PASSCODE_REQUIRED, token, link.vault_id)
            hasher = get_hasher()
            if not hasher.verify(passcode, link.passcode_hash):
                return ShareLinkService._deny(DENIED_INVALID_PASSCODE, token, link.vault_id)

        vault = link.vault
        vault_id, vault_name, vault_type = vault.id, vault.name, vault.type
        max_views = link.max_views

        values = {'views_used': VaultShareLink.views_used + 1}
        if hasher is not None and hasher.needs_rehash(link.passcode_hash):
            values['passcode_hash'] = hasher.hash(passcode)

        stmt = update(VaultShareLink).where(VaultShareLink.token == token)
        if max_views is not None:
            stmt = stmt.where(VaultShareLink.views_used < VaultShareLink.max_views)
        if link.expires_at is not None:
            stmt = stmt.where(VaultShareLink.expires_at > now)
        stmt = stmt.values(**values).execution_options(synchronize_session=False)

        try:
            result = db.session.execute(stmt)
            if result.rowcount != 1:
                db.session.rollback()
                still_exists = db.session.execute(
                    select(VaultShareLink.token).where(VaultShareLink.token == token)
                ).scalar()
                # lost the race for the last view, or revoked in between
                return ShareLinkService._deny(DENIED_EXHAUSTED if still_exists else DENIED_INVALID,
                                              token, vault_id)

            items = tuple(
                SharedItem.from_item(item)
                for item in VaultItem.query.filter_by(vault_id=vault_id).order_by(VaultItem.created_at.desc()).all()
            )
            views_used = db.session.execute(
                select(VaultShareLink.views_used).where(VaultShareLink.token == token)
            ).scalar()
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"ShareLinkService: failed to record view for {_short(token)}: {e}")
            raise Conflict()

        views_remaining = None
        if max_views is not None:
            views_remaining = max(max_views - (views_used or 0), 0)

        logger.info(f"ShareLinkService: access granted via {_short(token)} to vault {vault_id}")
        log_action('SHARE_LINK_ACCESSED', 'Vault viewed through share link',
                   additional_info={'vault_id': vault_id, 'views_remaining': views_remaining})
        return GrantedView(vault_id=vault_id, vault_name=vault_name, vault_type=vault_type,
                           items=items, views_remaining=views_remaining)

    @staticmethod
    def revoke(token: str, issuer_id: str) -> bool:
        """Delete a share link. Returns False if it was already gone."""
        link = db.session.get(VaultShareLink, token) if token else None
        if link is None:
            return False
        vault, _ = require_role(link.vault_id, issuer_id, MANAGE)

        try:
            deleted = VaultShareLink.query.filter_by(token=token).delete(synchronize_session=False)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"ShareLinkService: failed to revoke {_short(token)}: {e}")
            raise Conflict()

        if deleted:
            log_action('SHARE_LINK_REVOKED', 'Share link revoked', subject=vault, actor_id=issuer_id)
        return bool(deleted)

    @staticmethod
    def list(vault_id: str, issuer_id: str):
        """Share links of a vault, newest first."""
        vault, _ = require_role(vault_id, issuer_id, MANAGE)
        return VaultShareLink.query.filter_by(vault_id=vault.id).order_by(
            VaultShareLink.created_at.desc()).all()

    @staticmethod
    def _deny(reason, token, vault_id=None):
        logger.info(f"ShareLinkService: access denied via {_short(token)}: {reason}")
        log_action('SHARE_LINK_DENIED', f'Share link access denied: {reason}', success=False,
                   additional_info={'vault_id': vault_id, 'reason': reason})
        return Denied(reason)
