import smtplib
from datetime import timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

from vaultshare import db
from vaultshare.errors import Conflict, Forbidden, NotFound, ValidationError
from vaultshare.models import VaultInvitation, VaultMember, utcnow
from vaultshare.services.invitations import InvitationService


def _expire(invitation):
    invitation.expires_at = utcnow() - timedelta(seconds=1)
    db.session.commit()


def test_create_invitation(family_vault):
    invitation = InvitationService.create(family_vault.id, '  Dave@Example.COM ', 'view', 'alice')
    assert invitation.email == 'dave@example.com'
    assert invitation.role == 'view'
    assert invitation.accepted is False
    assert invitation.created_by_id == 'alice'
    assert len(invitation.token) >= 43
    ttl = invitation.expires_at - invitation.created_at
    assert timedelta(days=6, hours=23) < ttl <= timedelta(days=7, seconds=5)
    assert invitation.status() == 'pending'


def test_create_invitation_uses_configured_ttl(app, family_vault):
    app.config['INVITATION_TTL_DAYS'] = 1
    invitation = InvitationService.create(family_vault.id, 'dave@example.com', 'edit', 'alice')
    assert invitation.expires_at - utcnow() <= timedelta(days=1)


@pytest.mark.parametrize('email,role', [
    ('not-an-email', 'view'),
    ('dave@example.com', 'owner'),
    ('dave@example.com', 'admin'),
    (None, 'view'),
])
def test_create_invitation_validation(family_vault, email, role):
    with pytest.raises(ValidationError):
        InvitationService.create(family_vault.id, email, role, 'alice')
    assert VaultInvitation.query.count() == 0


def test_only_owner_can_invite(family_vault):
    with pytest.raises(Forbidden):
        InvitationService.create(family_vault.id, 'dave@example.com', 'view', 'bob')
    with pytest.raises(Forbidden):
        InvitationService.create(family_vault.id, 'dave@example.com', 'view', 'mallory')
    with pytest.raises(NotFound):
        InvitationService.create('missing', 'dave@example.com', 'view', 'alice')


def test_personal_vault_cannot_be_shared(personal_vault):
    with pytest.raises(ValidationError):
        InvitationService.create(personal_vault.id, 'dave@example.com', 'view', 'alice')


def test_lookup_pending_invitation(family_vault):
    invitation = InvitationService.create(family_vault.id, 'dave@example.com', 'view', 'alice')
    assert InvitationService.lookup(invitation.token).id == invitation.id


def test_lookup_after_expiry_is_not_found(family_vault):
    invitation = InvitationService.create(family_vault.id, 'dave@example.com', 'view', 'alice')
    token = invitation.token
    _expire(invitation)

    with pytest.raises(NotFound):
        InvitationService.lookup(token)
    assert db.session.get(VaultInvitation, invitation.id).status() == 'expired'


def test_lookup_unknown_or_empty_token(app):
    with pytest.raises(NotFound):
        InvitationService.lookup('does-not-exist')
    with pytest.raises(NotFound):
        InvitationService.lookup('')


def test_accept_grants_role_and_consumes_invitation(family_vault):
    invitation = InvitationService.create(family_vault.id, 'dave@example.com', 'edit', 'alice')
    token = invitation.token

    member = InvitationService.accept(token, 'dave')
    assert (member.vault_id, member.user_id, member.role) == (family_vault.id, 'dave', 'edit')

    stored = db.session.get(VaultInvitation, invitation.id)
    assert stored.accepted is True
    assert stored.status() == 'accepted'
    with pytest.raises(NotFound):
        InvitationService.lookup(token)


def test_second_accept_leaves_single_membership(family_vault):
    invitation = InvitationService.create(family_vault.id, 'dave@example.com', 'view', 'alice')
    token = invitation.token
    InvitationService.accept(token, 'dave')

    with pytest.raises(NotFound):
        InvitationService.accept(token, 'dave')

    rows = VaultMember.query.filter_by(vault_id=family_vault.id, user_id='dave').all()
    assert len(rows) == 1
    assert rows[0].role == 'view'


def test_accept_updates_existing_member_role(family_vault):
    invitation = InvitationService.create(family_vault.id, 'carol@example.com', 'edit', 'alice')
    InvitationService.accept(invitation.token, 'carol')
    assert db.session.get(VaultMember, (family_vault.id, 'carol')).role == 'edit'


def test_accept_never_downgrades_owner(family_vault):
    invitation = InvitationService.create(family_vault.id, 'alice@example.com', 'view', 'alice')
    InvitationService.accept(invitation.token, 'alice')
    assert db.session.get(VaultMember, (family_vault.id, 'alice')).role == 'owner'


def test_owner_accepting_without_member_row_gets_owner_row(family_vault):
    VaultMember.query.filter_by(vault_id=family_vault.id, user_id='alice').delete()
    db.session.commit()

    invitation = InvitationService.create(family_vault.id, 'alice@example.com', 'edit', 'alice')
    member = InvitationService.accept(invitation.token, 'alice')

    assert member.role == 'owner'
    rows = VaultMember.query.filter_by(vault_id=family_vault.id, user_id='alice').all()
    assert [r.role for r in rows] == ['owner']


def test_accept_expired_invitation(family_vault):
    invitation = InvitationService.create(family_vault.id, 'dave@example.com', 'view', 'alice')
    token = invitation.token
    _expire(invitation)

    with pytest.raises(NotFound):
        InvitationService.accept(token, 'dave')
    assert db.session.get(VaultMember, (family_vault.id, 'dave')) is None


def test_accept_is_all_or_nothing(family_vault, monkeypatch):
    invitation = InvitationService.create(family_vault.id, 'dave@example.com', 'view', 'alice')
    invitation_id, token = invitation.id, invitation.token

    def broken_update(*args, **kwargs):
        raise SQLAlchemyError('disk full')

    # the membership row is flushed before the accepted flag is written
    monkeypatch.setattr('vaultshare.services.invitations.update', broken_update)
    with pytest.raises(Conflict):
        InvitationService.accept(token, 'dave')
    monkeypatch.undo()

    assert db.session.get(VaultMember, (family_vault.id, 'dave')) is None
    assert db.session.get(VaultInvitation, invitation_id).accepted is False
    # still actionable afterwards
    assert InvitationService.accept(token, 'dave').role == 'view'


def test_revoke_is_idempotent(family_vault):
    invitation = InvitationService.create(family_vault.id, 'dave@example.com', 'view', 'alice')
    invitation_id, token = invitation.id, invitation.token

    with pytest.raises(Forbidden):
        InvitationService.revoke(invitation_id, 'bob')

    assert InvitationService.revoke(invitation_id, 'alice') is True
    assert InvitationService.revoke(invitation_id, 'alice') is False
    with pytest.raises(NotFound):
        InvitationService.lookup(token)


def test_list_invitations_newest_first(family_vault):
    first = InvitationService.create(family_vault.id, 'one@example.com', 'view', 'alice')
    second = InvitationService.create(family_vault.id, 'two@example.com', 'edit', 'alice')
    first.created_at = utcnow() - timedelta(hours=1)
    db.session.commit()

    listed = InvitationService.list(family_vault.id, 'alice')
    assert [i.id for i in listed] == [second.id, first.id]

    with pytest.raises(Forbidden):
        InvitationService.list(family_vault.id, 'carol')


def test_list_for_email_only_returns_pending(family_vault):
    pending = InvitationService.create(family_vault.id, 'dave@example.com', 'view', 'alice')
    expired = InvitationService.create(family_vault.id, 'dave@example.com', 'edit', 'alice')
    accepted = InvitationService.create(family_vault.id, 'dave@example.com', 'view', 'alice')
    InvitationService.create(family_vault.id, 'erin@example.com', 'view', 'alice')
    _expire(expired)
    InvitationService.accept(accepted.token, 'dave')

    assert [i.id for i in InvitationService.list_for_email('DAVE@example.com')] == [pending.id]
    assert InvitationService.list_for_email(None) == []


def test_send_email(family_vault, monkeypatch):
    invitation = InvitationService.create(family_vault.id, 'dave@example.com', 'view', 'alice')
    sent = {}

    def fake_send(to_address, subject, body):
        sent['to'] = to_address
        sent['subject'] = subject
        sent['body'] = body
        return True

    monkeypatch.setattr('vaultshare.utils.mailer.send_generic_email', fake_send)

    url = f'https://vault.example.com/invite/{invitation.token}'
    assert InvitationService.send_email(invitation, url, issuer_id='alice') is True
    assert sent['to'] == 'dave@example.com'
    assert url in sent['body']
    assert 'Family' in sent['subject']
    assert invitation.email_sent_at is not None


def test_send_email_failure_keeps_invitation(family_vault, monkeypatch):
    invitation = InvitationService.create(family_vault.id, 'dave@example.com', 'view', 'alice')

    def failing_send(to_address, subject, body):
        raise smtplib.SMTPException('relay refused')

    monkeypatch.setattr('vaultshare.utils.mailer.send_generic_email', failing_send)

    assert InvitationService.send_email(invitation, 'https://x/invite', issuer_id='alice') is False
    stored = db.session.get(VaultInvitation, invitation.id)
    assert stored is not None and stored.email_sent_at is None
    assert InvitationService.lookup(invitation.token).id == invitation.id
