from flask import Blueprint, jsonify
from flask_login import login_required, current_user

from vaultshare import db
from vaultshare.utils.validators import get_json_payload, sanitize_string

bp = Blueprint('profile', __name__, url_prefix='/api/profile')

PROFILE_FIELDS = {
    'first_name': 100,
    'last_name': 100,
    'phone_number': 50,
    'company': 200,
}


@bp.route('', methods=['GET'])
@login_required
def get_profile():
    return jsonify(current_user.to_dict())


@bp.route('', methods=['PUT', 'PATCH'])
@login_required
def update_profile():
    """Update the caller's own profile. The email belongs to the identity provider."""
    data = get_json_payload()
    for field, max_length in PROFILE_FIELDS.items():
        if field in data:
            setattr(current_user, field, sanitize_string(data[field], max_length) or None)
    db.session.commit()
    return jsonify(current_user.to_dict())
