"""
PKCE (RFC 7636) helpers for pairing with the hub.
"""

import base64
import hashlib
import secrets
import string

# Unreserved URL characters allowed in a code verifier
CODE_VERIFIER_CHARSET = string.ascii_uppercase + string.ascii_lowercase + string.digits + "-._~"
CODE_VERIFIER_LENGTH = 128


def create_code_verifier(length: int = CODE_VERIFIER_LENGTH) -> str:
    """Generate a random code verifier from the unreserved URL alphabet."""
    if not 43 <= length <= 128:
        raise ValueError("code verifier length must be between 43 and 128")
    return ''.join(secrets.choice(CODE_VERIFIER_CHARSET) for _ in range(length))


def create_code_challenge(code_verifier: str) -> str:
    """
    Derive the S256 code challenge for a verifier.

    Args:
        code_verifier: Verifier string

    Returns:
        base64url encoding of SHA-256(verifier) without '=' padding
    """
    digest = hashlib.sha256(code_verifier.encode('ascii')).digest()
    return base64.urlsafe_b64encode(digest).decode('ascii').rstrip('=')
