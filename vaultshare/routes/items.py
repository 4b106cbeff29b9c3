from flask import Blueprint, jsonify
from flask_login import login_required, current_user

from vaultshare.services.items import VaultItemService
from vaultshare.utils.validators import get_json_payload

bp = Blueprint('items', __name__, url_prefix='/api/vaults/<vault_id>/items')


@bp.route('', methods=['GET'])
@login_required
def list_items(vault_id):
    items = VaultItemService.list(vault_id, current_user.user_id)
    return jsonify([item.to_dict() for item in items])


@bp.route('', methods=['POST'])
@login_required
def create_item(vault_id):
    item = VaultItemService.create(vault_id, current_user.user_id, get_json_payload())
    return jsonify(item.to_dict()), 201


@bp.route('/<item_id>', methods=['GET'])
@login_required
def get_item(vault_id, item_id):
    item = VaultItemService.get(vault_id, item_id, current_user.user_id)
    return jsonify(item.to_dict())


@bp.route('/<item_id>', methods=['PATCH', 'PUT'])
@login_required
def update_item(vault_id, item_id):
    item = VaultItemService.update(vault_id, item_id, current_user.user_id, get_json_payload())
    return jsonify(item.to_dict())


@bp.route('/<item_id>', methods=['DELETE'])
@login_required
def delete_item(vault_id, item_id):
    VaultItemService.delete(vault_id, item_id, current_user.user_id)
    return '', 204
