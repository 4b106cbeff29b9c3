from vaultshare import db
from flask_login import UserMixin
import datetime
import uuid


VAULT_TYPES = ('personal', 'family', 'team')

ROLE_OWNER = 'owner'
ROLE_EDIT = 'edit'
ROLE_VIEW = 'view'
MEMBER_ROLES = (ROLE_OWNER, ROLE_EDIT, ROLE_VIEW)
# Roles that can be granted by invitation or by the member management API
GRANTABLE_ROLES = (ROLE_EDIT, ROLE_VIEW)


def utcnow():
    """Naive UTC timestamp, the format every DateTime column stores."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def new_id():
    return str(uuid.uuid4())


def isoformat(value):
    if value is None:
        return None
    return value.isoformat() + 'Z'


class Profile(UserMixin, db.Model):
    """Profile of an identity-provider subject; doubles as the login user."""
    __tablename__ = 'profiles'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(db.String(255), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255), index=True)
    first_name = db.Column(db.String(100))
    last_name = db.Column(db.String(100))
    phone_number = db.Column(db.String(50))
    company = db.Column(db.String(200))
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def get_id(self):
        return self.user_id

    @property
    def full_name(self):
        parts = [p for p in (self.first_name, self.last_name) if p]
        return ' '.join(parts) or None

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'phone_number': self.phone_number,
            'company': self.company,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }

    def __str__(self):
        return self.email or self.user_id


class Vault(db.Model):
    __tablename__ = 'vaults'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(100), nullable=False)
    type = db.Column(db.String(20), nullable=False, default='personal')  # 'personal', 'family', 'team'
    owner_id = db.Column(db.String(255), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    members = db.relationship('VaultMember', back_populates='vault', lazy=True,
                              cascade='all, delete-orphan', passive_deletes=True)
    items = db.relationship('VaultItem', back_populates='vault', lazy=True,
                            cascade='all, delete-orphan', passive_deletes=True)
    invitations = db.relationship('VaultInvitation', back_populates='vault', lazy=True,
                                  cascade='all, delete-orphan', passive_deletes=True)
    share_links = db.relationship('VaultShareLink', back_populates='vault', lazy=True,
                                  cascade='all, delete-orphan', passive_deletes=True)

    @property
    def is_personal(self):
        return self.type == 'personal'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'owner_id': self.owner_id,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }

    def __str__(self):
        return f"{self.name} ({self.type})"


class VaultMember(db.Model):
    __tablename__ = 'vault_members'

    vault_id = db.Column(db.String(36), db.ForeignKey('vaults.id', ondelete='CASCADE'), primary_key=True)
    user_id = db.Column(db.String(255), primary_key=True, index=True)
    role = db.Column(db.String(10), nullable=False, default=ROLE_VIEW)  # 'owner', 'edit', 'view'
    joined_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    vault = db.relationship('Vault', back_populates='members')

    def to_dict(self, profile=None):
        data = {
            'vault_id': self.vault_id,
            'user_id': self.user_id,
            'role': self.role,
            'joined_at': isoformat(self.joined_at),
        }
        if profile is not None:
            data['profile'] = {
                'first_name': profile.first_name,
                'last_name': profile.last_name,
                'email': profile.email,
            }
        return data

    def __str__(self):
        return f"{self.user_id} in {self.vault_id} as {self.role}"


class VaultItem(db.Model):
    __tablename__ = 'vault_items'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    vault_id = db.Column(db.String(36), db.ForeignKey('vaults.id', ondelete='CASCADE'),
                         nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    username = db.Column(db.String(255))
    password = db.Column(db.Text, nullable=False)
    notes = db.Column(db.Text)
    tags = db.Column(db.JSON)
    created_by = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    vault = db.relationship('Vault', back_populates='items')

    def to_dict(self):
        return {
            'id': self.id,
            'vault_id': self.vault_id,
            'title': self.title,
            'username': self.username,
            'password': self.password,
            'notes': self.notes,
            'tags': list(self.tags or []),
            'created_by': self.created_by,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }

    def __str__(self):
        return self.title


class VaultInvitation(db.Model):
    """Invitation binding an email to a future membership.

    There is no status column: whether an invitation is pending, accepted or
    expired is always derived from ``accepted`` and ``expires_at``.
    """
    __tablename__ = 'vault_invitations'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    vault_id = db.Column(db.String(36), db.ForeignKey('vaults.id', ondelete='CASCADE'),
                         nullable=False, index=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    role = db.Column(db.String(10), nullable=False)  # 'edit', 'view'
    token = db.Column(db.String(128), unique=True, nullable=False, index=True)
    accepted = db.Column(db.Boolean, default=False, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    created_by_id = db.Column(db.String(255))
    email_sent_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    vault = db.relationship('Vault', back_populates='invitations')

    def is_actionable(self, now=None):
        now = now or utcnow()
        return not self.accepted and now < self.expires_at

    def status(self, now=None):
        if self.accepted:
            return 'accepted'
        if not self.is_actionable(now):
            return 'expired'
        return 'pending'

    def to_dict(self, include_vault=False):
        data = {
            'id': self.id,
            'vault_id': self.vault_id,
            'email': self.email,
            'role': self.role,
            'token': self.token,
            'accepted': self.accepted,
            'status': self.status(),
            'expires_at': isoformat(self.expires_at),
            'email_sent_at': isoformat(self.email_sent_at),
            'created_at': isoformat(self.created_at),
        }
        if include_vault and self.vault is not None:
            data['vault'] = {'name': self.vault.name, 'type': self.vault.type}
        return data

    def __str__(self):
        return f"Invitation {self.id}: {self.email} as {self.role}"


class VaultShareLink(db.Model):
    """Anonymous read-only capability over a vault's items.

    "expired" and "exhausted" are derived from ``expires_at`` and
    ``views_used``/``max_views``; nothing stores a status.
    """
    __tablename__ = 'vault_share_links'

    token = db.Column(db.String(128), primary_key=True)
    vault_id = db.Column(db.String(36), db.ForeignKey('vaults.id', ondelete='CASCADE'),
                         nullable=False, index=True)
    passcode_hash = db.Column(db.String(255))
    max_views = db.Column(db.Integer)  # NULL = unlimited
    views_used = db.Column(db.Integer, default=0, nullable=False)
    expires_at = db.Column(db.DateTime)  # NULL = never
    created_by_id = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    vault = db.relationship('Vault', back_populates='share_links')

    @property
    def has_passcode(self):
        return self.passcode_hash is not None

    @property
    def views_remaining(self):
        if self.max_views is None:
            return None
        return max(self.max_views - (self.views_used or 0), 0)

    def is_expired(self, now=None):
        now = now or utcnow()
        return self.expires_at is not None and now >= self.expires_at

    def is_exhausted(self):
        return self.max_views is not None and (self.views_used or 0) >= self.max_views

    def status(self, now=None):
        if self.is_expired(now):
            return 'expired'
        if self.is_exhausted():
            return 'exhausted'
        return 'active'

    def to_dict(self):
        # passcode_hash never leaves the share-link engine
        return {
            'token': self.token,
            'vault_id': self.vault_id,
            'has_passcode': self.has_passcode,
            'max_views': self.max_views,
            'views_used': self.views_used or 0,
            'views_remaining': self.views_remaining,
            'status': self.status(),
            'expires_at': isoformat(self.expires_at),
            'created_at': isoformat(self.created_at),
        }

    def __str__(self):
        return f"Share link for {self.vault_id} ({self.status()})"


class AuditLog(db.Model):
    """Compact audit rows for quick queries; retention handled by the scheduler."""
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    timestamp = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
    actor_id = db.Column(db.String(255), index=True)
    ip = db.Column(db.String(64))
    action = db.Column(db.String(64), nullable=False, index=True)
    object_type = db.Column(db.String(64))
    object_id = db.Column(db.String(128))
    details = db.Column(db.Text)
    success = db.Column(db.Boolean, default=True, nullable=False)

    def __str__(self):
        return f"{self.timestamp} {self.action} by {self.actor_id}"
