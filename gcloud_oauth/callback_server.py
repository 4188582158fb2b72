"""
Local OAuth redirect listener
"""
import asyncio
import html
import logging
from typing import NamedTuple, Optional, Union

from aiohttp import web

import settings
from .errors import AuthorizationError, AuthorizationTimeout, StateMismatch

logger = logging.getLogger(__name__)

_PAGE = """<html>
    <head><title>{title}</title></head>
    <body>
        <h1>{title}</h1>
        <p>{message}</p>
        <p>You can close this window and return to the terminal.</p>
        <script>setTimeout(function() {{ window.close(); }}, 1000);</script>
    </body>
</html>
"""


class AuthorizationCode(NamedTuple):
    """Authorization code captured from the provider redirect"""
    code: str
    state: str


class RedirectListener:
    """Single-use loopback HTTP server that captures one OAuth redirect

    Use as an async context manager so the port is released on every exit
    path, including timeouts and cancellation of the awaiting task::

        async with RedirectListener(state, port=8085) as listener:
            url = build_url(listener.redirect_uri)
            result = await listener.await_redirect(timeout=300)
    """

    def __init__(
        self,
        expected_state: str,
        port: Optional[int] = None,
        host: Optional[str] = None,
        path: Optional[str] = None,
    ):
        self.expected_state = expected_state
        self.host = host or settings.CALLBACK_HOST
        self.port = settings.CALLBACK_PORT if port is None else port
        self.path = path or settings.CALLBACK_PATH
        self.runner: Optional[web.AppRunner] = None
        self._captured = False
        self._outcome: Optional[Union[AuthorizationCode, Exception]] = None
        self._event = asyncio.Event()

        self.app = web.Application()
        self.app.router.add_get(self.path, self._handle_redirect, allow_head=False)

    @property
    def redirect_uri(self) -> str:
        """Redirect URI pointing at this listener"""
        return f"http://{self.host}:{self.port}{self.path}"

    def _page(self, title: str, message: str, status: int = 200) -> web.Response:
        return web.Response(
            text=_PAGE.format(title=title, message=message),
            content_type="text/html",
            status=status,
            headers={"Connection": "close"},
        )

    def _classify(self, request: web.Request):
        """Map the redirect query to (outcome, title, message, status)"""
        query = request.query
        error = query.get("error")
        code = query.get("code")
        state = query.get("state")

        if error:
            logger.warning(f"OAuth redirect returned error: {error}")
            outcome = AuthorizationError(error, query.get("error_description"))
            return outcome, "Authentication Failed", f"Error: {html.escape(error)}", 400

        # Validate state (CSRF protection); a code without state never matches
        if state != self.expected_state:
            logger.warning("OAuth redirect state mismatch")
            outcome = StateMismatch("OAuth state parameter does not match this login attempt")
            return outcome, "Authentication Failed", "Invalid state parameter.", 400

        return AuthorizationCode(code=code, state=state), "Authentication Successful!", "Authorization received.", 200

    async def _handle_redirect(self, request: web.Request) -> web.StreamResponse:
        """Handle the provider redirect"""
        if self._captured:
            # Only the first redirect counts
            return self._page("Already Handled", "This sign-in request was already processed.", status=410)
        if not request.query.get("code") and not request.query.get("error"):
            # Not an authorization response; keep waiting for the real redirect
            logger.debug("Ignoring request without code or error parameter")
            return self._page(
                "Waiting for Sign-in",
                "This request did not carry an authorization response.",
                status=400,
            )

        self._captured = True

        outcome, title, message, status = self._classify(request)

        # Flush the page before releasing the waiter, which shuts the server down
        response = self._page(title, message, status=status)
        try:
            await response.prepare(request)
            await response.write_eof()
        finally:
            self._outcome = outcome
            self._event.set()
        return response

    async def start(self) -> None:
        """Bind the loopback port and start accepting the redirect"""
        self.runner = web.AppRunner(self.app, access_log=None)
        await self.runner.setup()
        site = web.TCPSite(self.runner, host=self.host, port=self.port)
        try:
            await site.start()
        except OSError:
            await self.stop()
            raise

        if self.port == 0:
            # Pick up the port chosen by the OS
            self.port = self.runner.addresses[0][1]

        logger.debug(f"OAuth redirect listener bound to {self.host}:{self.port}")

    async def stop(self) -> None:
        """Stop listening and release the port"""
        if self.runner:
            runner, self.runner = self.runner, None
            await runner.cleanup()
            logger.debug(f"OAuth redirect listener on port {self.port} stopped")

    async def await_redirect(self, timeout: Optional[float] = None) -> AuthorizationCode:
        """
        Wait for the provider redirect.

        Args:
            timeout: Maximum time to wait in seconds (default CALLBACK_TIMEOUT)

        Returns:
            AuthorizationCode on success

        Raises:
            AuthorizationError: Provider redirected with an error
            StateMismatch: Redirect carried a different state
            AuthorizationTimeout: No redirect before the deadline
        """
        timeout = settings.CALLBACK_TIMEOUT if timeout is None else timeout
        try:
            await asyncio.wait_for(self._event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            raise AuthorizationTimeout(f"No OAuth redirect received within {timeout:g} seconds") from None
        finally:
            await self.stop()

        if isinstance(self._outcome, Exception):
            raise self._outcome
        return self._outcome

    async def __aenter__(self) -> "RedirectListener":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
