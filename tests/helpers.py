"""Shared helpers for the test suite"""

import asyncio
import base64
import datetime
import json
import socket
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, urlparse

import aiohttp

from gcloud_oauth.models import TokenBundle, utcnow

TOKEN_URI = "https://oauth2.test/token"
AUTH_URI = "https://accounts.test/o/oauth2/v2/auth"


def b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def make_id_token(email: Optional[str] = "a@example.com", **claims: Any) -> str:
    """Structurally valid, unsigned JWT with the given claims"""
    payload: Dict[str, Any] = {"iss": "https://accounts.google.com", "sub": "1234567890"}
    if email is not None:
        payload["email"] = email
    payload.update(claims)
    header = b64url(json.dumps({"alg": "RS256", "typ": "JWT"}).encode())
    body = b64url(json.dumps(payload).encode())
    return f"{header}.{body}.c2lnbmF0dXJl"


def make_bundle(
    email: str = "u@x.com",
    expires_in: int = 3600,
    refresh_token: Optional[str] = "refresh-1",
    access_token: str = "access-1",
    now: Optional[datetime.datetime] = None,
) -> TokenBundle:
    now = now or utcnow()
    return TokenBundle(
        access_token=access_token,
        id_token=make_id_token(email),
        refresh_token=refresh_token,
        token_expiry=now + datetime.timedelta(seconds=expires_in),
        scope_identity=email,
    )


def token_response(
    access_token: str = "AT1",
    email: Optional[str] = "u@x.com",
    expires_in: int = 3600,
    refresh_token: Optional[str] = "RT1",
) -> Dict[str, Any]:
    """JSON body of a token endpoint response"""
    payload: Dict[str, Any] = {
        "access_token": access_token,
        "expires_in": expires_in,
        "token_type": "Bearer",
        "scope": "openid email",
    }
    if email is not None:
        payload["id_token"] = make_id_token(email)
    if refresh_token is not None:
        payload["refresh_token"] = refresh_token
    return payload


def free_port() -> int:
    """A loopback port that is free right now"""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


async def hit_redirect(uri: str, params: Dict[str, str]) -> int:
    """Simulate the browser following the provider redirect"""
    async with aiohttp.ClientSession() as session:
        async with session.get(uri, params=params) as response:
            await response.read()
            return response.status


class RedirectingBrowser:
    """Stand-in for webbrowser.open that immediately follows the redirect

    The redirect carries the state from the authorization URL unless
    overridden through ``params``.
    """

    def __init__(self, params: Optional[Dict[str, str]] = None, opened: bool = True):
        self.params = params or {"code": "auth-code"}
        self.opened = opened
        self.urls = []
        self.tasks = []

    def __call__(self, url: str) -> bool:
        self.urls.append(url)
        query = parse_qs(urlparse(url).query)
        params = {"state": query["state"][0]}
        params.update(self.params)
        redirect_uri = query["redirect_uri"][0]
        self.tasks.append(asyncio.get_running_loop().create_task(hit_redirect(redirect_uri, params)))
        return self.opened

    async def wait(self):
        return await asyncio.gather(*self.tasks, return_exceptions=True)
