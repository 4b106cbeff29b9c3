"""
Error taxonomy of the access-control core.

Every failure is scoped to a single request; the HTTP layer renders them as
JSON and the presentation layer picks the wording.
"""

import logging

from flask import jsonify

from vaultshare.utils import messages

logger = logging.getLogger(__name__)


class VaultError(Exception):
    """Base class of all typed failures raised by the services."""
    status_code = 400
    code = 'error'
    default_message = messages.ERROR_GENERIC

    def __init__(self, message=None, **details):
        self.message = message if message is not None else self.default_message
        self.details = details
        super().__init__(str(self.message))

    def to_dict(self):
        data = {'error': self.code, 'message': str(self.message)}
        if self.details:
            data['details'] = self.details
        return data


class ValidationError(VaultError):
    """Malformed input: bad email, bad role, bad quota."""
    status_code = 400
    code = 'validation_error'
    default_message = messages.ERROR_INVALID_INPUT


class NotFound(VaultError):
    """Record absent, or no longer valid per its lifecycle predicate."""
    status_code = 404
    code = 'not_found'
    default_message = messages.ERROR_NOT_FOUND


class Forbidden(VaultError):
    """The actor lacks the role the operation requires."""
    status_code = 403
    code = 'forbidden'
    default_message = messages.ERROR_PERMISSION_DENIED


class Conflict(VaultError):
    """A multi-write could not complete consistently."""
    status_code = 409
    code = 'conflict'
    default_message = messages.ERROR_CONFLICT


def register_error_handlers(app):
    @app.errorhandler(VaultError)
    def handle_vault_error(error):
        if error.status_code >= 500:
            logger.error(f"Unhandled vault error: {error}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({'error': 'not_found', 'message': str(messages.ERROR_NOT_FOUND)}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return jsonify({'error': 'method_not_allowed', 'message': str(error.description)}), 405

    @app.errorhandler(429)
    def handle_rate_limited(error):
        return jsonify({'error': 'rate_limited', 'message': str(messages.ERROR_RATE_LIMITED)}), 429
