"""Access token staleness checks and silent refresh"""

import datetime
import logging
from typing import Optional, Union

import httpx

import settings
from config.credentials import ClientConfig
from .errors import MalformedToken, RefreshFailure
from .jwt_utils import extract_email
from .models import TokenBundle, utcnow
from .token_exchange import request_refreshed_tokens


logger = logging.getLogger(__name__)


def needs_refresh(
    bundle: TokenBundle,
    now: Optional[datetime.datetime] = None,
    margin: Union[int, float, datetime.timedelta, None] = None,
) -> bool:
    """Check if the access token should be refreshed

    Args:
        bundle: Cached token bundle
        now: Reference time (default: current UTC time)
        margin: Safety buffer before expiry, seconds or timedelta
                (default REFRESH_MARGIN)

    Returns:
        True once now >= token_expiry - margin
    """
    now = now or utcnow()
    if margin is None:
        margin = settings.REFRESH_MARGIN
    if not isinstance(margin, datetime.timedelta):
        margin = datetime.timedelta(seconds=margin)
    return now >= bundle.token_expiry - margin


async def refresh(
    bundle: TokenBundle,
    client_config: ClientConfig,
    http_client: Optional[httpx.AsyncClient] = None,
) -> TokenBundle:
    """Refresh an access token using the bundle's refresh token

    The previous refresh token is kept when the response does not rotate it,
    and the previous ID token is kept when no new one is issued.

    Args:
        bundle: Stale token bundle holding a refresh token
        client_config: OAuth client credentials
        http_client: Optional httpx client to reuse

    Returns:
        New TokenBundle for the same identity

    Raises:
        RefreshFailure: If there is no refresh token or the provider rejects it
    """
    if not bundle.refresh_token:
        raise RefreshFailure("No refresh token available")

    logger.info(f"Refreshing access token for {bundle.scope_identity}")
    payload = await request_refreshed_tokens(bundle.refresh_token, client_config, http_client=http_client)

    scope_identity = bundle.scope_identity
    new_id_token = payload.get("id_token")
    if new_id_token:
        try:
            scope_identity = extract_email(new_id_token)
        except MalformedToken as e:
            raise RefreshFailure(f"Refreshed ID token is malformed: {e}") from e

        if scope_identity != bundle.scope_identity:
            logger.warning(
                f"Refreshed ID token belongs to {scope_identity}, expected {bundle.scope_identity}"
            )

    refreshed = TokenBundle.from_token_response(
        payload,
        scope_identity=scope_identity,
        refresh_token=bundle.refresh_token,
        id_token=bundle.id_token,
    )

    logger.info("Successfully refreshed access token")
    return refreshed
