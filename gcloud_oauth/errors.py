"""Exceptions raised by the token lifecycle

Backend specific failures (keyring, filesystem, httpx, JSON) are converted to
these types where they occur, so callers of TokenManager only ever see
AuthError subclasses.
"""

from typing import Optional


class AuthError(Exception):
    """Base class for all authentication failures"""


class MalformedToken(AuthError):
    """ID token could not be decoded into an identity"""


class StoreUnavailable(AuthError):
    """Credential storage backend failed (locked keyring, I/O error, ...)"""


class AuthorizationError(AuthError):
    """Provider redirected back with an error instead of a code"""

    def __init__(self, error: str, description: Optional[str] = None):
        self.error = error
        self.description = description
        message = f"Authorization failed: {error}"
        if description:
            message += f" ({description})"
        super().__init__(message)


class StateMismatch(AuthError):
    """Redirect state did not match the one generated for this flow"""


class AuthorizationTimeout(AuthError):
    """User did not complete the browser login before the deadline"""


class ProviderError(AuthError):
    """Token endpoint rejected a request or could not be reached"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        description: Optional[str] = None,
    ):
        self.status_code = status_code
        self.error_code = error_code
        self.description = description
        details = []
        if status_code is not None:
            details.append(f"HTTP {status_code}")
        if error_code:
            details.append(error_code)
        if description:
            details.append(description)
        if details:
            message = f"{message}: {', '.join(details)}"
        super().__init__(message)


class TokenExchangeError(ProviderError):
    """Authorization code could not be exchanged for tokens"""


class RefreshFailure(ProviderError):
    """Refresh token was rejected; a new interactive login is needed"""
