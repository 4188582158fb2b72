"""Tests for the loopback redirect listener"""

import asyncio
import socket

import aiohttp
import pytest

from gcloud_oauth.callback_server import AuthorizationCode, RedirectListener
from gcloud_oauth.errors import AuthorizationError, AuthorizationTimeout, StateMismatch
from tests.helpers import free_port, hit_redirect


def assert_port_free(port: int) -> None:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(("127.0.0.1", port))


@pytest.mark.asyncio
async def test_captures_code_with_matching_state():
    async with RedirectListener("expected-state", port=0) as listener:
        request = asyncio.create_task(
            hit_redirect(listener.redirect_uri, {"code": "the-code", "state": "expected-state"})
        )
        result = await listener.await_redirect(timeout=5)

    assert result == AuthorizationCode(code="the-code", state="expected-state")
    assert await request == 200


@pytest.mark.asyncio
async def test_redirect_uri_points_at_bound_port():
    port = free_port()
    async with RedirectListener("s", port=port) as listener:
        assert listener.redirect_uri == f"http://127.0.0.1:{port}/"


@pytest.mark.asyncio
async def test_ephemeral_port_is_resolved():
    async with RedirectListener("s", port=0) as listener:
        assert listener.port > 0
        assert listener.redirect_uri.endswith(f":{listener.port}/")


@pytest.mark.asyncio
async def test_state_mismatch_fails_and_releases_port():
    port = free_port()
    listener = RedirectListener("expected-state", port=port)
    await listener.start()
    request = asyncio.create_task(hit_redirect(listener.redirect_uri, {"code": "c", "state": "forged"}))

    with pytest.raises(StateMismatch):
        await listener.await_redirect(timeout=5)

    # Browser still gets a page
    assert await request == 400

    # A second listener can bind the same port immediately
    async with RedirectListener("next-state", port=port) as second:
        assert second.port == port


@pytest.mark.asyncio
async def test_provider_error_is_authorization_error():
    async with RedirectListener("s", port=0) as listener:
        request = asyncio.create_task(
            hit_redirect(listener.redirect_uri, {"error": "access_denied", "error_description": "User denied"})
        )
        with pytest.raises(AuthorizationError) as excinfo:
            await listener.await_redirect(timeout=5)

    assert excinfo.value.error == "access_denied"
    assert excinfo.value.description == "User denied"
    assert await request == 400


@pytest.mark.asyncio
async def test_request_without_code_or_error_is_not_captured():
    async with RedirectListener("s", port=0) as listener:
        assert await hit_redirect(listener.redirect_uri, {"state": "s"}) == 400
        assert await hit_redirect(listener.redirect_uri, {}) == 400

        request = asyncio.create_task(hit_redirect(listener.redirect_uri, {"code": "c", "state": "s"}))
        result = await listener.await_redirect(timeout=5)

    assert result == AuthorizationCode(code="c", state="s")
    assert await request == 200


@pytest.mark.asyncio
async def test_head_request_does_not_consume_listener():
    async with RedirectListener("s", port=0) as listener:
        async with aiohttp.ClientSession() as session:
            async with session.head(listener.redirect_uri) as response:
                assert response.status == 405

        request = asyncio.create_task(hit_redirect(listener.redirect_uri, {"code": "c", "state": "s"}))
        result = await listener.await_redirect(timeout=5)

    assert result.code == "c"
    await request


@pytest.mark.asyncio
async def test_code_without_state_is_state_mismatch():
    async with RedirectListener("s", port=0) as listener:
        request = asyncio.create_task(hit_redirect(listener.redirect_uri, {"code": "c"}))
        with pytest.raises(StateMismatch):
            await listener.await_redirect(timeout=5)
    assert await request == 400


@pytest.mark.asyncio
async def test_timeout_is_distinct_and_releases_port():
    port = free_port()
    listener = RedirectListener("s", port=port)
    await listener.start()

    with pytest.raises(AuthorizationTimeout) as excinfo:
        await listener.await_redirect(timeout=0.1)

    assert not isinstance(excinfo.value, AuthorizationError)
    assert listener.runner is None
    assert_port_free(port)


@pytest.mark.asyncio
async def test_cancellation_releases_port():
    port = free_port()
    listener = RedirectListener("s", port=port)
    await listener.start()

    waiter = asyncio.create_task(listener.await_redirect(timeout=30))
    await asyncio.sleep(0.05)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    assert listener.runner is None
    assert_port_free(port)


@pytest.mark.asyncio
async def test_only_first_request_counts():
    listener = RedirectListener("s", port=0)
    await listener.start()
    uri = listener.redirect_uri

    first = await hit_redirect(uri, {"code": "first", "state": "s"})
    # Result is already captured; the server has not been stopped yet
    second = await hit_redirect(uri, {"code": "second", "state": "s"})

    result = await listener.await_redirect(timeout=5)
    assert result.code == "first"
    assert first == 200
    assert second == 410


@pytest.mark.asyncio
async def test_unknown_path_does_not_complete_redirect():
    async with RedirectListener("s", port=0, path="/callback") as listener:
        other = await hit_redirect(f"http://127.0.0.1:{listener.port}/favicon.ico", {})
        assert other == 404

        request = asyncio.create_task(hit_redirect(listener.redirect_uri, {"code": "c", "state": "s"}))
        result = await listener.await_redirect(timeout=5)
        await request

    assert result.code == "c"


@pytest.mark.asyncio
async def test_port_in_use_raises_os_error():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        sock.listen(1)
        port = sock.getsockname()[1]

        listener = RedirectListener("s", port=port)
        with pytest.raises(OSError):
            await listener.start()
        assert listener.runner is None
