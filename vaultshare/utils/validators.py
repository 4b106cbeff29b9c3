import re
from datetime import datetime, timezone

from vaultshare.errors import ValidationError
from vaultshare.models import GRANTABLE_ROLES, VAULT_TYPES
from vaultshare.utils import messages

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


def validate_email_format(email):
    """Validate email format and return it normalized (trimmed, lowercase).

    Raises ValidationError if invalid.
    """
    if not isinstance(email, str):
        raise ValidationError(messages.VALIDATION_INVALID_EMAIL, field='email')
    email = email.strip()
    if not EMAIL_PATTERN.match(email):
        raise ValidationError(messages.VALIDATION_INVALID_EMAIL, field='email')
    return email.lower()


def validate_grantable_role(role):
    """Roles handed out by invitations and member management: edit or view."""
    if role not in GRANTABLE_ROLES:
        raise ValidationError(messages.VALIDATION_INVALID_ROLE % {'roles': ', '.join(GRANTABLE_ROLES)},
                              field='role')
    return role


def validate_vault_type(vault_type):
    if vault_type not in VAULT_TYPES:
        raise ValidationError(messages.VALIDATION_INVALID_VAULT_TYPE % {'types': ', '.join(VAULT_TYPES)},
                              field='type')
    return vault_type


def validate_vault_name(name):
    if not isinstance(name, str) or not name.strip() or len(name.strip()) > 100:
        raise ValidationError(messages.VALIDATION_VAULT_NAME, field='name')
    return name.strip()


def validate_required_string(value, field):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(messages.ERROR_REQUIRED_FIELD % {'field': field}, field=field)
    return value


def validate_tags(tags):
    if tags is None:
        return None
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise ValidationError(messages.VALIDATION_INVALID_TAGS, field='tags')
    return [t.strip() for t in tags if t.strip()]


def validate_max_views(max_views):
    if max_views is None:
        return None
    # bool is an int subclass; reject it explicitly
    if isinstance(max_views, bool) or not isinstance(max_views, int) or max_views < 1:
        raise ValidationError(messages.VALIDATION_MAX_VIEWS, field='max_views')
    return max_views


def parse_datetime(value, field='expires_at'):
    """Parse an ISO-8601 instant into a naive UTC datetime.

    Accepts datetime objects and strings with or without offset ('Z' included);
    values without offset are taken as UTC.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        candidate = value.strip()
        if candidate.endswith('Z'):
            candidate = candidate[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(candidate)
        except ValueError:
            raise ValidationError(messages.VALIDATION_INVALID_DATETIME, field=field)
    else:
        raise ValidationError(messages.VALIDATION_INVALID_DATETIME, field=field)

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def sanitize_string(text, max_length=None):
    """Trim a free-text value and optionally truncate it. None stays None."""
    if text is None:
        return None
    text = str(text).strip()
    if max_length:
        return text[:max_length]
    return text


def get_json_payload():
    """Return the request's JSON object body ({} when absent).

    Raises ValidationError when the body is JSON but not an object.
    """
    from flask import request

    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(messages.ERROR_INVALID_INPUT)
    return data
