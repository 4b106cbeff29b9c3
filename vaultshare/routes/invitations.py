from flask import Blueprint, current_app, jsonify, url_for
from flask_login import login_required, current_user

from vaultshare import limiter
from vaultshare.services.invitations import InvitationService
from vaultshare.utils.validators import get_json_payload

bp = Blueprint('invitations', __name__, url_prefix='/api')


def accept_url_for(token):
    template = current_app.config.get('INVITATION_ACCEPT_URL_TEMPLATE')
    if template:
        return template.format(token=token)
    return url_for('invitations.lookup_invitation', token=token, _external=True)


@bp.route('/vaults/<vault_id>/invitations', methods=['GET'])
@login_required
def list_invitations(vault_id):
    """Invitations of a vault, newest first; status is derived per record."""
    invitations = InvitationService.list(vault_id, current_user.user_id)
    return jsonify([inv.to_dict() for inv in invitations])


@bp.route('/vaults/<vault_id>/invitations', methods=['POST'])
@login_required
def create_invitation(vault_id):
    data = get_json_payload()
    invitation = InvitationService.create(vault_id, data.get('email'), data.get('role'), current_user.user_id)

    accept_url = accept_url_for(invitation.token)
    email_sent = False
    if data.get('send_email'):
        email_sent = InvitationService.send_email(invitation, accept_url, issuer_id=current_user.user_id)

    payload = invitation.to_dict()
    payload['url'] = accept_url
    payload['email_sent'] = email_sent
    return jsonify(payload), 201


@bp.route('/invitations/<invitation_id>', methods=['DELETE'])
@login_required
def revoke_invitation(invitation_id):
    # already-gone invitations are not an error, so retries stay safe
    InvitationService.revoke(invitation_id, current_user.user_id)
    return '', 204


@bp.route('/invitations/mine', methods=['GET'])
@login_required
def my_invitations():
    invitations = InvitationService.list_for_email(current_user.email)
    return jsonify([inv.to_dict(include_vault=True) for inv in invitations])


@bp.route('/invitations/token/<token>', methods=['GET'])
@limiter.limit(lambda: current_app.config['INVITATION_LOOKUP_RATE_LIMIT'])
def lookup_invitation(token):
    invitation = InvitationService.lookup(token)
    return jsonify({
        'id': invitation.id,
        'vault_id': invitation.vault_id,
        'vault': {'name': invitation.vault.name, 'type': invitation.vault.type},
        'email': invitation.email,
        'role': invitation.role,
        'expires_at': invitation.to_dict()['expires_at'],
    })


@bp.route('/invitations/token/<token>/accept', methods=['POST'])
@login_required
@limiter.limit(lambda: current_app.config['INVITATION_LOOKUP_RATE_LIMIT'])
def accept_invitation(token):
    member = InvitationService.accept(token, current_user.user_id)
    return jsonify(member.to_dict())
