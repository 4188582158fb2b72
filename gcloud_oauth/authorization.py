"""
Google OAuth authorization code flow with PKCE and a loopback redirect
"""
import logging
import os
import sys
import webbrowser
from enum import Enum
from typing import Callable, Optional
from urllib.parse import urlencode

import httpx
from rich.console import Console

from config.credentials import ClientConfig
from .callback_server import RedirectListener
from .errors import AuthError, MalformedToken, TokenExchangeError
from .jwt_utils import extract_email
from .models import TokenBundle
from .pkce import create_state, generate_pkce
from .token_exchange import exchange_code_for_tokens

logger = logging.getLogger(__name__)


class FlowState(Enum):
    """States of a single authorization attempt"""
    IDLE = "idle"
    URL_BUILT = "url_built"
    AWAITING_REDIRECT = "awaiting_redirect"
    EXCHANGING = "exchanging"
    COMPLETE = "complete"
    FAILED = "failed"


def build_authorization_url(
    client_config: ClientConfig,
    redirect_uri: str,
    state: str,
    code_challenge: str,
) -> str:
    """
    Build the Google authorization URL.

    access_type=offline and prompt=consent make Google issue a refresh
    token on every interactive login.

    Args:
        client_config: OAuth client credentials
        redirect_uri: Loopback URI of the redirect listener
        state: CSRF state nonce
        code_challenge: PKCE S256 challenge

    Returns:
        Full authorization URL
    """
    params = {
        "client_id": client_config.client_id,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": client_config.scopes,
        "state": state,
        "code_challenge": code_challenge,
        "code_challenge_method": "S256",
        "access_type": "offline",
        "include_granted_scopes": "true",
        "prompt": "consent",
    }
    return f"{client_config.auth_uri}?{urlencode(params)}"


def is_headless_env() -> bool:
    """True on Linux sessions without a graphical display"""
    if not sys.platform.startswith("linux"):
        return False
    return not os.getenv("DISPLAY") and not os.getenv("WAYLAND_DISPLAY")


def open_system_browser(url: str) -> bool:
    """Open url in the default browser unless no display is available"""
    if is_headless_env():
        logger.debug("No display available, skipping browser launch")
        return False
    return webbrowser.open(url)


class AuthorizationFlow:
    """One interactive login: Idle -> UrlBuilt -> AwaitingRedirect -> Exchanging -> Complete | Failed

    PKCE values, the state nonce and the listener port belong to this instance
    only. A flow runs once; start a new instance to retry.
    """

    def __init__(
        self,
        client_config: ClientConfig,
        open_browser: Optional[Callable[[str], bool]] = None,
        console: Optional[Console] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        port: Optional[int] = None,
    ):
        """
        Args:
            client_config: OAuth client credentials
            open_browser: Browser launcher returning False when it could not
                          open the URL (default: system browser)
            console: Rich console for user-facing messages (default: stderr)
            http_client: Optional httpx client for the token exchange
            port: Listener port (default: client_config.redirect_port)
        """
        self.client_config = client_config
        self.open_browser = open_browser or open_system_browser
        self.console = console or Console(stderr=True)
        self.http_client = http_client
        self.port = client_config.redirect_port if port is None else port

        self.state = FlowState.IDLE
        self.authorization_url: Optional[str] = None
        self.redirect_uri: Optional[str] = None
        self.error: Optional[AuthError] = None

    def _transition(self, new_state: FlowState) -> None:
        logger.debug(f"Authorization flow: {self.state.value} -> {new_state.value}")
        self.state = new_state

    def _launch_browser(self, url: str) -> None:
        """Open the browser, or print the URL for manual copy"""
        try:
            opened = bool(self.open_browser(url))
        except (webbrowser.Error, OSError) as e:
            logger.warning(f"Could not launch browser: {e}")
            opened = False

        if opened:
            self.console.print("[green]Opened your browser to sign in with Google.[/green]")
            self.console.print("[dim]If it did not open, visit this URL:[/dim]")
        else:
            self.console.print("\n[yellow]Open this URL in your browser to sign in:[/yellow]\n")
        self.console.print(url, markup=False, highlight=False, soft_wrap=True)
        self.console.print()

    async def run(self, timeout: Optional[float] = None) -> TokenBundle:
        """
        Run the flow to completion.

        Args:
            timeout: Seconds to wait for the browser redirect
                     (default CALLBACK_TIMEOUT)

        Returns:
            TokenBundle with scope_identity taken from the ID token

        Raises:
            AuthorizationError, StateMismatch, AuthorizationTimeout:
                The redirect did not yield a usable code
            TokenExchangeError: The code could not be exchanged
            RuntimeError: The flow was already run
        """
        if self.state is not FlowState.IDLE:
            raise RuntimeError("AuthorizationFlow can only run once; create a new instance to retry")

        try:
            bundle = await self._run(timeout)
        except AuthError as e:
            self.error = e
            logger.info(f"Authorization flow failed: {e}")
            raise
        finally:
            if self.state is not FlowState.COMPLETE:
                self._transition(FlowState.FAILED)

        return bundle

    async def _run(self, timeout: Optional[float]) -> TokenBundle:
        pkce = generate_pkce()
        state = create_state()

        listener = RedirectListener(state, port=self.port)
        try:
            await listener.start()
        except OSError as e:
            raise AuthError(f"Could not start redirect listener on port {self.port}: {e}") from e

        try:
            self.redirect_uri = listener.redirect_uri
            self.authorization_url = build_authorization_url(
                self.client_config, self.redirect_uri, state, pkce.challenge
            )
            self._transition(FlowState.URL_BUILT)

            self._launch_browser(self.authorization_url)
            self._transition(FlowState.AWAITING_REDIRECT)

            result = await listener.await_redirect(timeout)
        finally:
            await listener.stop()

        self._transition(FlowState.EXCHANGING)
        payload = await exchange_code_for_tokens(
            result.code,
            pkce.verifier,
            self.redirect_uri,
            self.client_config,
            http_client=self.http_client,
        )

        try:
            scope_identity = extract_email(payload.get("id_token") or "")
        except MalformedToken as e:
            raise TokenExchangeError(f"Token response has an unusable ID token: {e}") from e

        bundle = TokenBundle.from_token_response(payload, scope_identity=scope_identity)
        self._transition(FlowState.COMPLETE)
        logger.info(f"Signed in as {scope_identity}")
        return bundle
