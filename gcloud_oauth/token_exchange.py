"""OAuth token endpoint requests (code exchange and refresh)"""

import json
import logging
from typing import Any, Dict, Optional, Type

import httpx

import settings
from config.credentials import ClientConfig
from .errors import ProviderError, RefreshFailure, TokenExchangeError


logger = logging.getLogger(__name__)

# Upper bound for expires_in (one year)
MAX_EXPIRES_IN = 366 * 24 * 60 * 60


def _error_details(response: httpx.Response) -> Dict[str, Optional[str]]:
    """Pull the OAuth error code and description out of an error response"""
    try:
        payload = response.json()
    except (json.JSONDecodeError, ValueError):
        return {"error_code": None, "description": response.text[:200] or None}

    if not isinstance(payload, dict):
        return {"error_code": None, "description": None}

    error = payload.get("error")
    description = payload.get("error_description")
    # Some Google APIs nest errors as {"error": {"status": ..., "message": ...}}
    if isinstance(error, dict):
        description = description or error.get("message")
        error = error.get("status")
    return {
        "error_code": error if isinstance(error, str) else None,
        "description": description if isinstance(description, str) else None,
    }


async def post_token_request(
    token_uri: str,
    data: Dict[str, str],
    error_cls: Type[ProviderError],
    http_client: Optional[httpx.AsyncClient] = None,
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """POST a form to the token endpoint and return the decoded JSON payload

    Args:
        token_uri: Token endpoint URL
        data: Form fields to send
        error_cls: ProviderError subclass raised on failure
        http_client: Optional client to reuse (a new one is created otherwise)
        timeout: Per-request deadline in seconds (default REQUEST_TIMEOUT)

    Returns:
        Decoded JSON response containing at least access_token and expires_in

    Raises:
        ProviderError: error_cls for transport failures, non-2xx responses
            and malformed payloads
    """
    timeout = settings.REQUEST_TIMEOUT if timeout is None else timeout
    grant_type = data.get("grant_type")

    try:
        if http_client is None:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.post(token_uri, data=data, headers={"Accept": "application/json"})
        else:
            response = await http_client.post(
                token_uri, data=data, headers={"Accept": "application/json"}, timeout=timeout
            )
    except httpx.TimeoutException as e:
        logger.error(f"Token request ({grant_type}) timed out after {timeout} seconds")
        raise error_cls(f"Token endpoint timed out after {timeout:g} seconds") from e
    except httpx.HTTPError as e:
        logger.error(f"Token request ({grant_type}) failed: {e}")
        raise error_cls(f"Token endpoint request failed: {e}") from e

    logger.debug(f"Token request ({grant_type}) response status: {response.status_code}")

    if not response.is_success:
        details = _error_details(response)
        logger.error(
            f"Token request ({grant_type}) failed with status {response.status_code}: "
            f"{details['error_code'] or 'no error code'}"
        )
        raise error_cls("Token endpoint rejected the request", status_code=response.status_code, **details)

    try:
        payload = response.json()
    except (json.JSONDecodeError, ValueError) as e:
        raise error_cls("Token endpoint returned invalid JSON", status_code=response.status_code) from e

    if not isinstance(payload, dict) or not payload.get("access_token"):
        raise error_cls("Token response is missing access_token", status_code=response.status_code)

    try:
        expires_in = int(payload["expires_in"])
    except (KeyError, TypeError, ValueError, OverflowError):
        raise error_cls("Token response has no valid expires_in", status_code=response.status_code) from None

    if not 0 <= expires_in <= MAX_EXPIRES_IN:
        raise error_cls(
            f"Token response expires_in is out of range: {expires_in}", status_code=response.status_code
        )

    return payload


async def exchange_code_for_tokens(
    code: str,
    code_verifier: str,
    redirect_uri: str,
    client_config: ClientConfig,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, Any]:
    """
    Exchange authorization code for access, ID and refresh tokens.

    Args:
        code: Authorization code from the redirect
        code_verifier: PKCE code verifier for this flow
        redirect_uri: Redirect URI used in the authorization request
        client_config: OAuth client credentials
        http_client: Optional httpx client to reuse

    Returns:
        Token endpoint JSON payload

    Raises:
        TokenExchangeError: If the exchange fails
    """
    logger.info(f"Exchanging authorization code for tokens at {client_config.token_uri}")
    return await post_token_request(
        client_config.token_uri,
        {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "code_verifier": code_verifier,
            "client_id": client_config.client_id,
            "client_secret": client_config.client_secret,
        },
        TokenExchangeError,
        http_client=http_client,
    )


async def request_refreshed_tokens(
    refresh_token: str,
    client_config: ClientConfig,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, Any]:
    """
    Request a new access token using a refresh token.

    Args:
        refresh_token: Stored OAuth refresh token
        client_config: OAuth client credentials
        http_client: Optional httpx client to reuse

    Returns:
        Token endpoint JSON payload (refresh_token and id_token may be absent)

    Raises:
        RefreshFailure: If the refresh is rejected or fails
    """
    return await post_token_request(
        client_config.token_uri,
        {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": client_config.client_id,
            "client_secret": client_config.client_secret,
        },
        RefreshFailure,
        http_client=http_client,
    )
