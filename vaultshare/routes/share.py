from flask import Blueprint, current_app, jsonify, url_for
from flask_login import login_required, current_user

from vaultshare import limiter
from vaultshare.services.share_links import (
    ShareLinkService, DENIED_INVALID, DENIED_EXPIRED, DENIED_EXHAUSTED,
    DENIED_PASSCODE_REQUIRED, DENIED_INVALID_PASSCODE
)
from vaultshare.utils.validators import get_json_payload

bp = Blueprint('share_links', __name__, url_prefix='/api')
public_bp = Blueprint('share', __name__, url_prefix='/share')

DENIAL_STATUS = {
    DENIED_INVALID: 404,
    DENIED_EXPIRED: 410,
    DENIED_EXHAUSTED: 410,
    DENIED_PASSCODE_REQUIRED: 401,
    DENIED_INVALID_PASSCODE: 403,
}


def share_url_for(token):
    template = current_app.config.get('SHARE_LINK_URL_TEMPLATE')
    if template:
        return template.format(token=token)
    return url_for('share.verify', token=token, _external=True)


@bp.route('/vaults/<vault_id>/share-links', methods=['GET'])
@login_required
def list_share_links(vault_id):
    links = ShareLinkService.list(vault_id, current_user.user_id)
    return jsonify([link.to_dict() for link in links])


@bp.route('/vaults/<vault_id>/share-links', methods=['POST'])
@login_required
def create_share_link(vault_id):
    data = get_json_payload()
    link = ShareLinkService.create(
        vault_id,
        current_user.user_id,
        expires_at=data.get('expires_at'),
        max_views=data.get('max_views'),
        passcode=data.get('passcode'),
    )
    payload = link.to_dict()
    payload['url'] = share_url_for(link.token)
    return jsonify(payload), 201


@bp.route('/share-links/<token>', methods=['DELETE'])
@login_required
def revoke_share_link(token):
    ShareLinkService.revoke(token, current_user.user_id)
    return '', 204


@public_bp.route('/<token>', methods=['POST'])
@limiter.limit(lambda: current_app.config['SHARE_VERIFY_RATE_LIMIT'])
def verify(token):
    """Anonymous access to a shared vault; spends one view on success."""
    data = get_json_payload()
    result = ShareLinkService.verify(token, data.get('passcode'))
    if not result.granted:
        return jsonify(result.to_dict()), DENIAL_STATUS[result.reason]
    return jsonify(result.to_dict())
