"""
PKCE (Proof Key for Code Exchange) helpers
"""
import base64
import hashlib
import secrets
from typing import NamedTuple


class PKCEPair(NamedTuple):
    """PKCE code verifier and challenge pair"""
    verifier: str
    challenge: str


def generate_pkce() -> PKCEPair:
    """
    Generate PKCE code verifier and challenge.

    RFC 7636 PKCE standard:
    - Verifier: 43-128 characters, base64url encoded (64 bytes -> 86 chars)
    - Challenge: SHA-256 hash of verifier, base64url encoded

    Returns:
        PKCEPair: Tuple of (verifier, challenge)
    """
    verifier = secrets.token_urlsafe(64)

    challenge_bytes = hashlib.sha256(verifier.encode('ascii')).digest()
    challenge = base64.urlsafe_b64encode(challenge_bytes).decode('ascii').rstrip('=')

    return PKCEPair(verifier=verifier, challenge=challenge)


def create_state() -> str:
    """
    Generate random state parameter for CSRF protection.

    Returns:
        str: URL-safe random state string
    """
    return secrets.token_urlsafe(32)
