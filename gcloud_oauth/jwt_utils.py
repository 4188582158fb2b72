"""
ID token parsing and email extraction
"""
import base64
import binascii
import json
from typing import Any, Dict

from .errors import MalformedToken


def decode_jwt_claims(token: str) -> Dict[str, Any]:
    """
    Decode the payload of a JWT without verification.

    Note: This only decodes the payload, it does not verify the signature.
    The token must have come straight from the token endpoint over TLS;
    never use the result to authorize anything.

    Args:
        token: JWT (header.payload.signature)

    Returns:
        Decoded JWT payload as dictionary

    Raises:
        MalformedToken: If the token is not a decodable three-part JWT
    """
    if not isinstance(token, str):
        raise MalformedToken("Token is not a string")

    # JWT structure: header.payload.signature
    parts = token.split(".")
    if len(parts) != 3:
        raise MalformedToken(f"Invalid JWT format: expected 3 parts, got {len(parts)}")

    payload = parts[1]

    # Add padding if needed (JWT uses base64url without padding)
    padded = payload + "=" * (-len(payload) % 4)

    try:
        decoded = base64.b64decode(padded, altchars=b"-_", validate=True)
        claims = json.loads(decoded.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise MalformedToken(f"Could not decode JWT payload: {e}") from e

    if not isinstance(claims, dict):
        raise MalformedToken("JWT payload is not a JSON object")

    return claims


def extract_email(id_token: str) -> str:
    """
    Extract the email address from a Google ID token.

    The email is only used as a storage key for the cached credentials.

    Args:
        id_token: OpenID Connect ID token

    Returns:
        Email claim of the token

    Raises:
        MalformedToken: If the token cannot be decoded or has no email claim
    """
    claims = decode_jwt_claims(id_token)

    email = claims.get("email")
    if not isinstance(email, str) or not email:
        raise MalformedToken("ID token has no email claim")

    return email
