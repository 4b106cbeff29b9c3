from flask import Blueprint, jsonify
from flask_login import login_required, current_user

from vaultshare.services.roles import can_edit_content, can_manage
from vaultshare.services.vaults import VaultService
from vaultshare.utils.validators import get_json_payload

bp = Blueprint('vaults', __name__, url_prefix='/api/vaults')


def _vault_payload(vault, role, member_count=None):
    data = vault.to_dict()
    data['user_role'] = role
    data['permissions'] = {
        'can_edit_items': can_edit_content(role),
        'can_manage': can_manage(role),
    }
    if member_count is not None:
        data['member_count'] = member_count
    return data


@bp.route('', methods=['GET'])
@login_required
def list_vaults():
    vaults = VaultService.list_for_user(current_user.user_id)
    return jsonify([_vault_payload(v, role, count) for v, role, count in vaults])


@bp.route('', methods=['POST'])
@login_required
def create_vault():
    data = get_json_payload()
    vault = VaultService.create(current_user.user_id, data.get('name'), data.get('type', 'personal'))
    return jsonify(_vault_payload(vault, 'owner')), 201


@bp.route('/<vault_id>', methods=['GET'])
@login_required
def get_vault(vault_id):
    vault, role = VaultService.get(vault_id, current_user.user_id)
    return jsonify(_vault_payload(vault, role))


@bp.route('/<vault_id>', methods=['PATCH', 'PUT'])
@login_required
def update_vault(vault_id):
    data = get_json_payload()
    vault = VaultService.update(vault_id, current_user.user_id, name=data.get('name'),
                                vault_type=data.get('type'))
    return jsonify(_vault_payload(vault, 'owner'))


@bp.route('/<vault_id>', methods=['DELETE'])
@login_required
def delete_vault(vault_id):
    VaultService.delete(vault_id, current_user.user_id)
    return '', 204
