from flask import Blueprint, jsonify
from flask_login import login_required, current_user

from vaultshare.services.members import MembershipService
from vaultshare.utils.validators import get_json_payload

bp = Blueprint('members', __name__, url_prefix='/api/vaults/<vault_id>')


@bp.route('/members', methods=['GET'])
@login_required
def list_members(vault_id):
    members = MembershipService.list(vault_id, current_user.user_id)
    return jsonify([member.to_dict(profile) for member, profile in members])


@bp.route('/members', methods=['POST'])
@login_required
def add_member(vault_id):
    data = get_json_payload()
    member = MembershipService.add(vault_id, current_user.user_id, data.get('user_id'), data.get('role'))
    return jsonify(member.to_dict()), 201


@bp.route('/members/<user_id>', methods=['PATCH', 'PUT'])
@login_required
def update_member(vault_id, user_id):
    data = get_json_payload()
    member = MembershipService.update_role(vault_id, current_user.user_id, user_id, data.get('role'))
    return jsonify(member.to_dict())


@bp.route('/members/<user_id>', methods=['DELETE'])
@login_required
def remove_member(vault_id, user_id):
    MembershipService.remove(vault_id, current_user.user_id, user_id)
    return '', 204


@bp.route('/leave', methods=['POST'])
@login_required
def leave_vault(vault_id):
    MembershipService.leave(vault_id, current_user.user_id)
    return '', 204
