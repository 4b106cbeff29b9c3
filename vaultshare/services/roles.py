"""
Role resolution and the vault permission lattice.

    owner ⊇ edit ⊇ view

``resolve_role`` is the single place that decides what an actor may do with a
vault. ``None`` always means forbidden, never a default read access.
"""

from typing import Optional

from vaultshare import db
from vaultshare.errors import Forbidden, NotFound
from vaultshare.models import ROLE_EDIT, ROLE_OWNER, ROLE_VIEW, Vault, VaultMember
from vaultshare.utils import messages

ROLE_RANK = {ROLE_VIEW: 1, ROLE_EDIT: 2, ROLE_OWNER: 3}

# Minimum role per operation family
READ = ROLE_VIEW
WRITE_CONTENT = ROLE_EDIT
MANAGE = ROLE_OWNER


def resolve_role(vault: Vault, actor_id: Optional[str]) -> Optional[str]:
    """Return the actor's effective role on ``vault``, or None."""
    if vault is None or not actor_id:
        return None

    if vault.is_personal:
        # personal vaults never have anyone but their owner
        return ROLE_OWNER if actor_id == vault.owner_id else None

    member = db.session.get(VaultMember, (vault.id, actor_id))
    if member is not None:
        if actor_id == vault.owner_id:
            return ROLE_OWNER
        return member.role

    # The owner is always implicitly a member, whatever the table says.
    if actor_id == vault.owner_id:
        return ROLE_OWNER
    return None


def role_satisfies(role: Optional[str], minimum: str) -> bool:
    if role is None:
        return False
    return ROLE_RANK.get(role, 0) >= ROLE_RANK[minimum]


def can_read(role):
    return role_satisfies(role, READ)


def can_edit_content(role):
    return role_satisfies(role, WRITE_CONTENT)


def can_manage(role):
    return role_satisfies(role, MANAGE)


def get_vault_or_404(vault_id) -> Vault:
    vault = db.session.get(Vault, vault_id) if vault_id else None
    if vault is None:
        raise NotFound(messages.VAULT_NOT_FOUND)
    return vault


def require_role(vault_or_id, actor_id, minimum: str):
    """Load the vault (if given an id) and check the actor's role.

    Returns ``(vault, role)``. Raises NotFound for a missing vault and
    Forbidden when the actor's role is below ``minimum``.
    """
    vault = vault_or_id if isinstance(vault_or_id, Vault) else get_vault_or_404(vault_or_id)
    role = resolve_role(vault, actor_id)
    if not role_satisfies(role, minimum):
        raise Forbidden()
    return vault, role
