"""Data models for Google OAuth tokens"""

import datetime
from dataclasses import dataclass
from typing import Any, Dict, Optional


def utcnow() -> datetime.datetime:
    """Current time as a timezone-aware UTC datetime"""
    return datetime.datetime.now(datetime.timezone.utc)


def parse_timestamp(value: str) -> datetime.datetime:
    """Parse an ISO 8601 timestamp, assuming UTC when no offset is given"""
    if not isinstance(value, str):
        raise TypeError(f"Expected an ISO 8601 string, got {type(value).__name__}")
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed.astimezone(datetime.timezone.utc)


@dataclass
class TokenBundle:
    """Cached OAuth credentials for one Google account

    Attributes:
        access_token: Bearer token for API calls
        id_token: OpenID Connect ID token (JWT) identifying the user
        refresh_token: Long-lived token for silent renewal, if one was issued
        token_expiry: Absolute UTC expiry of access_token
        scope_identity: Email from id_token, used as the storage key
    """
    access_token: str
    id_token: str
    refresh_token: Optional[str]
    token_expiry: datetime.datetime
    scope_identity: str

    @classmethod
    def from_token_response(
        cls,
        payload: Dict[str, Any],
        scope_identity: str,
        refresh_token: Optional[str] = None,
        id_token: Optional[str] = None,
        now: Optional[datetime.datetime] = None,
    ) -> "TokenBundle":
        """Build a bundle from a token endpoint response

        Args:
            payload: Decoded JSON response from the token endpoint
            scope_identity: Email extracted from the ID token
            refresh_token: Refresh token to keep if the response has none
            id_token: ID token to keep if the response has none
            now: Reference time for converting expires_in to an absolute expiry

        Returns:
            TokenBundle with an absolute token_expiry
        """
        now = now or utcnow()
        expires_in = int(payload["expires_in"])
        return cls(
            access_token=payload["access_token"],
            id_token=payload.get("id_token") or id_token or "",
            refresh_token=payload.get("refresh_token") or refresh_token,
            token_expiry=now + datetime.timedelta(seconds=expires_in),
            scope_identity=scope_identity,
        )

    def expires_in_seconds(self, now: Optional[datetime.datetime] = None) -> int:
        """Seconds until the access token expires (0 once expired)"""
        now = now or utcnow()
        return max(0, int((self.token_expiry - now).total_seconds()))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return {
            "access_token": self.access_token,
            "id_token": self.id_token,
            "refresh_token": self.refresh_token,
            "token_expiry": self.token_expiry.isoformat(),
            "scope_identity": self.scope_identity,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenBundle":
        """Load from dictionary

        Raises:
            KeyError, TypeError, ValueError: If the stored data is malformed
        """
        if not isinstance(data, dict):
            raise TypeError(f"Expected a JSON object, got {type(data).__name__}")
        access_token = data["access_token"]
        id_token = data["id_token"]
        token_expiry = data["token_expiry"]
        scope_identity = data["scope_identity"]
        refresh_token = data.get("refresh_token")
        if not isinstance(access_token, str) or not isinstance(id_token, str):
            raise TypeError("access_token and id_token must be strings")
        if not isinstance(token_expiry, str):
            raise TypeError(f"token_expiry must be an ISO 8601 string, got {type(token_expiry).__name__}")
        if not isinstance(scope_identity, str) or not scope_identity:
            raise TypeError("scope_identity must be a non-empty string")
        if refresh_token is not None and not isinstance(refresh_token, str):
            raise TypeError("refresh_token must be a string or null")
        return cls(
            access_token=access_token,
            id_token=id_token,
            refresh_token=refresh_token or None,
            token_expiry=parse_timestamp(token_expiry),
            scope_identity=scope_identity,
        )

    def to_output(self) -> Dict[str, Any]:
        """Fields printed by the CLI for downstream use"""
        return {
            "access_token": self.access_token,
            "id_token": self.id_token,
            "token_expiry": self.token_expiry.isoformat().replace("+00:00", "Z"),
        }
