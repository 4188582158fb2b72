"""
OAuth token lifecycle management
"""
import asyncio
import logging
from typing import Any, Callable, Dict, Optional

import httpx
from rich.console import Console

from config.credentials import ClientConfig
from .authorization import AuthorizationFlow
from .errors import RefreshFailure, StoreUnavailable
from .models import TokenBundle, utcnow
from .storage import CredentialStore, get_store
from .token_refresh import needs_refresh, refresh

logger = logging.getLogger(__name__)


class TokenManager:
    """Returns a usable token bundle: cached, refreshed, or from a new login"""

    def __init__(
        self,
        client_config: ClientConfig,
        store: Optional[CredentialStore] = None,
        flow_factory: Optional[Callable[[], AuthorizationFlow]] = None,
        open_browser: Optional[Callable[[str], bool]] = None,
        console: Optional[Console] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize token manager.

        Args:
            client_config: OAuth client credentials
            store: Credential store (default: process-wide store from get_store())
            flow_factory: Creates a fresh AuthorizationFlow for each login
            open_browser: Browser launcher passed to new flows
            console: Rich console passed to new flows
            http_client: Optional httpx client for token endpoint calls
        """
        self.client_config = client_config
        self.store = store or get_store()
        self.flow_factory = flow_factory or self._new_flow
        self.open_browser = open_browser
        self.console = console
        self.http_client = http_client

    def _new_flow(self) -> AuthorizationFlow:
        return AuthorizationFlow(
            self.client_config,
            open_browser=self.open_browser,
            console=self.console,
            http_client=self.http_client,
        )

    def _load(self, identity: Optional[str]) -> Optional[TokenBundle]:
        try:
            return self.store.load(identity)
        except StoreUnavailable as e:
            logger.warning(f"Credential store unavailable, signing in again: {e}")
            return None

    def _persist(self, bundle: TokenBundle) -> None:
        try:
            self.store.save(bundle)
        except StoreUnavailable as e:
            logger.error(f"Could not save tokens for {bundle.scope_identity}: {e}")

    async def _authorize(self, identity: Optional[str]) -> TokenBundle:
        flow = self.flow_factory()
        bundle = await flow.run()
        if identity and bundle.scope_identity != identity:
            logger.warning(f"Signed in as {bundle.scope_identity}, not {identity}; storing a separate entry")
        self._persist(bundle)
        return bundle

    async def get_token_async(self, identity: Optional[str] = None) -> TokenBundle:
        """
        Get a valid token bundle.

        Args:
            identity: Email of the account to use (default: last used account)

        Returns:
            TokenBundle whose access token is not about to expire

        Raises:
            AuthError: If a required interactive login fails
        """
        cached = self._load(identity)
        if cached is None:
            logger.info("No cached credentials, starting browser login")
            return await self._authorize(identity)

        if not needs_refresh(cached):
            logger.debug(f"Using cached token for {cached.scope_identity}")
            return cached

        if cached.refresh_token:
            try:
                refreshed = await refresh(cached, self.client_config, http_client=self.http_client)
            except RefreshFailure as e:
                logger.warning(f"Token refresh failed, starting browser login: {e}")
            else:
                self._persist(refreshed)
                return refreshed
        else:
            logger.info(f"Cached token for {cached.scope_identity} expired and has no refresh token")

        return await self._authorize(identity or cached.scope_identity)

    def get_token(self, identity: Optional[str] = None) -> TokenBundle:
        """
        Get a valid token bundle (sync version).

        Must not be called from a running event loop; use get_token_async there.
        """
        return asyncio.run(self.get_token_async(identity))

    def logout(self, identity: Optional[str] = None) -> bool:
        """
        Delete stored tokens.

        Args:
            identity: Email of the account (default: last used account)

        Returns:
            True if an entry was removed
        """
        return self.store.delete(identity)

    def status(self, identity: Optional[str] = None) -> Dict[str, Any]:
        """
        Get token status without exposing secrets.

        Returns:
            Dictionary with status information
        """
        bundle = self._load(identity)
        if bundle is None:
            return {
                "backend": self.store.describe(),
                "has_tokens": False,
                "identity": identity,
                "expires_at": None,
                "time_until_expiry": None,
                "needs_refresh": True,
                "has_refresh_token": False,
            }

        remaining = bundle.expires_in_seconds(utcnow())
        if remaining > 0:
            hours = remaining // 3600
            minutes = (remaining % 3600) // 60
            time_until_expiry = f"{hours}h {minutes}m"
        else:
            time_until_expiry = "expired"

        return {
            "backend": self.store.describe(),
            "has_tokens": True,
            "identity": bundle.scope_identity,
            "expires_at": bundle.token_expiry.isoformat(),
            "time_until_expiry": time_until_expiry,
            "needs_refresh": needs_refresh(bundle),
            "has_refresh_token": bool(bundle.refresh_token),
        }


async def get_token_async(client_config: ClientConfig, identity: Optional[str] = None) -> TokenBundle:
    """Get a valid token bundle using the process-wide credential store"""
    return await TokenManager(client_config).get_token_async(identity)


def get_token(client_config: ClientConfig, identity: Optional[str] = None) -> TokenBundle:
    """Get a valid token bundle using the process-wide credential store (sync version)"""
    return TokenManager(client_config).get_token(identity)
