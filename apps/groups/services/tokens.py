"""
Invitation token helpers.

Tokens are random hex strings handed out in invitation links. Only their
sha256 digest is ever persisted.
"""

import hashlib
import hmac
import secrets


def generate_secure_token(byte_length: int = 32) -> str:
    """Return a URL-safe hex token of ``2 * byte_length`` characters."""
    return secrets.token_bytes(byte_length).hex()


def hash_token(token: str) -> str:
    """sha256 hex digest of the token."""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def verify_token(token: str, digest: str) -> bool:
    """Constant-time check that ``token`` hashes to ``digest``."""
    if not isinstance(token, str) or not isinstance(digest, str):
        return False
    return hmac.compare_digest(
        hash_token(token).encode('ascii'),
        digest.encode('utf-8'),
    )
