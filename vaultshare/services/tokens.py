"""Opaque bearer tokens for invitations and share links."""

import secrets

from flask import current_app, has_app_context

DEFAULT_TOKEN_BYTES = 32


def new_token(nbytes=None) -> str:
    """Return an unguessable, URL-safe token with no embedded structure.

    Uses the OS CSPRNG; 32 bytes of entropy encode to 43 characters of the
    base64url alphabet, safe in URL paths and query strings.
    """
    if nbytes is None:
        nbytes = current_app.config.get('TOKEN_BYTES', DEFAULT_TOKEN_BYTES) if has_app_context() \
            else DEFAULT_TOKEN_BYTES
    return secrets.token_urlsafe(nbytes)
