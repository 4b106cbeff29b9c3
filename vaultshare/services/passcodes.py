"""
Share-link passcode hashing with Argon2id.

Digests are deterministic for a given pepper: the salt is derived from the
server-side pepper (SHARE_PASSCODE_PEPPER, falling back to SECRET_KEY), so
``hash(x) == hash(x)`` while the memory-hard KDF and the secret pepper keep
stored digests from being reversed by someone who can only read the table.

Verification always recomputes the digest and compares it in constant time.
Legacy digests written by the previous implementation (bare SHA-256 hex) are
still accepted and reported by ``needs_rehash`` so callers can upgrade them.
"""

import hashlib
import hmac
import logging

from argon2.low_level import Type, hash_secret_raw
from flask import current_app

logger = logging.getLogger(__name__)

DIGEST_PREFIX = 'argon2id$'
LEGACY_SHA256_LENGTH = 64


class PasscodeHasher:
    """Deterministic, peppered Argon2id hasher for short passcodes."""

    def __init__(self, pepper: str, time_cost: int = 2, memory_cost: int = 19456,
                 parallelism: int = 1, hash_len: int = 32):
        if not pepper:
            raise ValueError("A pepper is required for passcode hashing")
        self.salt = hashlib.sha256(b'vaultshare-share-passcode:' + pepper.encode('utf-8')).digest()[:16]
        self.time_cost = time_cost
        self.memory_cost = memory_cost
        self.parallelism = parallelism
        self.hash_len = hash_len

    def hash(self, passcode: str) -> str:
        if not passcode:
            raise ValueError("Passcode cannot be empty")
        raw = hash_secret_raw(
            secret=passcode.encode('utf-8'),
            salt=self.salt,
            time_cost=self.time_cost,
            memory_cost=self.memory_cost,
            parallelism=self.parallelism,
            hash_len=self.hash_len,
            type=Type.ID,
        )
        return DIGEST_PREFIX + raw.hex()

    def verify(self, passcode: str, digest: str) -> bool:
        """Check a passcode against a stored digest in constant time."""
        if not passcode or not digest:
            return False

        if is_legacy_digest(digest):
            candidate = hashlib.sha256(passcode.encode('utf-8')).hexdigest()
            return hmac.compare_digest(candidate, digest.lower())

        if not digest.startswith(DIGEST_PREFIX):
            logger.warning("Unrecognised passcode digest format")
            return False

        return hmac.compare_digest(self.hash(passcode), digest)

    def needs_rehash(self, digest: str) -> bool:
        return bool(digest) and not digest.startswith(DIGEST_PREFIX)


def is_legacy_digest(digest: str) -> bool:
    if len(digest) != LEGACY_SHA256_LENGTH:
        return False
    try:
        int(digest, 16)
    except ValueError:
        return False
    return True


def get_hasher() -> PasscodeHasher:
    """Build the hasher from the current app's configuration."""
    config = current_app.config
    return PasscodeHasher(
        pepper=config.get('SHARE_PASSCODE_PEPPER') or config['SECRET_KEY'],
        time_cost=config.get('PASSCODE_HASH_TIME_COST', 2),
        memory_cost=config.get('PASSCODE_HASH_MEMORY_COST', 19456),
        parallelism=config.get('PASSCODE_HASH_PARALLELISM', 1),
    )


def hash_passcode(passcode: str) -> str:
    return get_hasher().hash(passcode)


def verify_passcode(passcode: str, digest: str) -> bool:
    return get_hasher().verify(passcode, digest)
