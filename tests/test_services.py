import pytest

from vaultshare import db
from vaultshare.errors import Conflict, Forbidden, NotFound, ValidationError
from vaultshare.models import (
    Vault, VaultInvitation, VaultItem, VaultMember, VaultShareLink
)
from vaultshare.services.invitations import InvitationService
from vaultshare.services.items import VaultItemService
from vaultshare.services.members import MembershipService
from vaultshare.services.share_links import ShareLinkService
from vaultshare.services.vaults import VaultService

from conftest import make_vault


# --- vaults -----------------------------------------------------------------

def test_create_shared_vault_adds_owner_row(app):
    vault = VaultService.create('alice', '  Home  ', 'family')
    assert vault.name == 'Home'
    member = db.session.get(VaultMember, (vault.id, 'alice'))
    assert member is not None and member.role == 'owner'


def test_create_personal_vault_has_no_member_rows(app):
    vault = VaultService.create('alice', 'Mine')
    assert vault.type == 'personal'
    assert VaultMember.query.filter_by(vault_id=vault.id).count() == 0


@pytest.mark.parametrize('name,vault_type', [('', 'family'), ('x' * 101, 'team'), ('Ok', 'company')])
def test_create_vault_validation(app, name, vault_type):
    with pytest.raises(ValidationError):
        VaultService.create('alice', name, vault_type)


def test_list_for_user_reports_role_and_member_count(family_vault, personal_vault):
    other = make_vault('dave', name='Dave', vault_type='team')

    listed = {v.id: (role, count) for v, role, count in VaultService.list_for_user('alice')}
    assert listed[family_vault.id] == ('owner', 3)
    assert listed[personal_vault.id] == ('owner', 1)
    assert other.id not in listed

    listed = {v.id: (role, count) for v, role, count in VaultService.list_for_user('carol')}
    assert listed == {family_vault.id: ('view', 3)}


def test_update_vault_requires_owner(family_vault):
    with pytest.raises(Forbidden):
        VaultService.update(family_vault.id, 'bob', name='Renamed')
    vault = VaultService.update(family_vault.id, 'alice', name='Renamed')
    assert vault.name == 'Renamed'


def test_cannot_make_vault_personal_while_shared(family_vault):
    with pytest.raises(ValidationError):
        VaultService.update(family_vault.id, 'alice', vault_type='personal')
    assert db.session.get(Vault, family_vault.id).type == 'family'


def test_type_change_keeps_owner_row_in_step(app):
    vault = VaultService.create('alice', 'Solo', 'team')
    VaultService.update(vault.id, 'alice', vault_type='personal')
    assert VaultMember.query.filter_by(vault_id=vault.id).count() == 0

    VaultService.update(vault.id, 'alice', vault_type='family')
    assert db.session.get(VaultMember, (vault.id, 'alice')).role == 'owner'


def test_delete_vault_cascades(family_vault):
    vault_id = family_vault.id
    VaultItemService.create(vault_id, 'bob', {'title': 'Wifi', 'password': 'pw'})
    InvitationService.create(vault_id, 'x@example.com', 'view', 'alice')
    ShareLinkService.create(vault_id, 'alice')

    with pytest.raises(Forbidden):
        VaultService.delete(vault_id, 'bob')
    VaultService.delete(vault_id, 'alice')

    assert db.session.get(Vault, vault_id) is None
    assert VaultMember.query.filter_by(vault_id=vault_id).count() == 0
    assert VaultItem.query.filter_by(vault_id=vault_id).count() == 0
    assert VaultInvitation.query.filter_by(vault_id=vault_id).count() == 0
    assert VaultShareLink.query.filter_by(vault_id=vault_id).count() == 0


# --- members ----------------------------------------------------------------

def test_member_list_includes_owner_row(family_vault):
    members = MembershipService.list(family_vault.id, 'carol')
    assert {m.user_id for m, _ in members} == {'alice', 'bob', 'carol'}


def test_add_member(family_vault):
    member = MembershipService.add(family_vault.id, 'alice', 'dave', 'view')
    assert member.role == 'view'

    with pytest.raises(Conflict):
        MembershipService.add(family_vault.id, 'alice', 'dave', 'edit')
    with pytest.raises(ValidationError):
        MembershipService.add(family_vault.id, 'alice', 'erin', 'owner')
    with pytest.raises(ValidationError):
        MembershipService.add(family_vault.id, 'alice', 'alice', 'edit')
    with pytest.raises(Forbidden):
        MembershipService.add(family_vault.id, 'bob', 'erin', 'view')


def test_add_member_to_personal_vault_is_rejected(personal_vault):
    with pytest.raises(ValidationError):
        MembershipService.add(personal_vault.id, 'alice', 'bob', 'view')


def test_update_member_role(family_vault):
    member = MembershipService.update_role(family_vault.id, 'alice', 'carol', 'edit')
    assert member.role == 'edit'

    with pytest.raises(ValidationError):
        MembershipService.update_role(family_vault.id, 'alice', 'alice', 'view')
    with pytest.raises(NotFound):
        MembershipService.update_role(family_vault.id, 'alice', 'nobody', 'view')


def test_remove_member(family_vault):
    assert MembershipService.remove(family_vault.id, 'alice', 'carol') is True
    assert MembershipService.remove(family_vault.id, 'alice', 'carol') is False
    with pytest.raises(ValidationError):
        MembershipService.remove(family_vault.id, 'alice', 'alice')


def test_leave_vault(family_vault):
    assert MembershipService.leave(family_vault.id, 'bob') is True
    assert db.session.get(VaultMember, (family_vault.id, 'bob')) is None

    with pytest.raises(ValidationError):
        MembershipService.leave(family_vault.id, 'alice')
    with pytest.raises(Forbidden):
        MembershipService.leave(family_vault.id, 'mallory')


# --- items ------------------------------------------------------------------

def test_item_permissions_follow_role(family_vault):
    item = VaultItemService.create(family_vault.id, 'bob', {
        'title': 'Bank', 'username': 'bob', 'password': 's3cret', 'tags': ['money', ' ']})
    assert item.tags == ['money']
    assert item.created_by == 'bob'

    assert [i.id for i in VaultItemService.list(family_vault.id, 'carol')] == [item.id]
    with pytest.raises(Forbidden):
        VaultItemService.create(family_vault.id, 'carol', {'title': 'x', 'password': 'y'})
    with pytest.raises(Forbidden):
        VaultItemService.list(family_vault.id, 'mallory')

    updated = VaultItemService.update(family_vault.id, item.id, 'alice', {'notes': 'joint account'})
    assert updated.notes == 'joint account'
    assert updated.password == 's3cret'

    with pytest.raises(Forbidden):
        VaultItemService.delete(family_vault.id, item.id, 'carol')
    VaultItemService.delete(family_vault.id, item.id, 'bob')
    with pytest.raises(NotFound):
        VaultItemService.get(family_vault.id, item.id, 'alice')


def test_item_requires_title_and_password(family_vault):
    with pytest.raises(ValidationError):
        VaultItemService.create(family_vault.id, 'alice', {'title': 'No password'})
    with pytest.raises(ValidationError):
        VaultItemService.create(family_vault.id, 'alice', {'password': 'x'})


def test_item_from_other_vault_is_not_found(family_vault, personal_vault):
    item = VaultItemService.create(personal_vault.id, 'alice', {'title': 'Mine', 'password': 'pw'})
    with pytest.raises(NotFound):
        VaultItemService.get(family_vault.id, item.id, 'alice')
