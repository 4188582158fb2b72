"""Pytest configuration and fixtures for gcloud-identity-token tests."""

import keyring
import pytest
from keyring.backend import KeyringBackend
from keyring.errors import KeyringError, PasswordDeleteError

from config.credentials import ClientConfig
from gcloud_oauth.storage import FileCredentialStore, KeyringCredentialStore
from tests.helpers import AUTH_URI, TOKEN_URI


class MemoryKeyring(KeyringBackend):
    """In-memory keyring backend"""

    priority = 1

    def __init__(self):
        super().__init__()
        self.passwords = {}

    def get_password(self, service, username):
        return self.passwords.get((service, username))

    def set_password(self, service, username, password):
        self.passwords[(service, username)] = password

    def delete_password(self, service, username):
        try:
            del self.passwords[(service, username)]
        except KeyError:
            raise PasswordDeleteError("Password not found")


class LockedKeyring(KeyringBackend):
    """Keyring backend that fails every operation"""

    priority = 1

    def get_password(self, service, username):
        raise KeyringError("keyring is locked")

    def set_password(self, service, username, password):
        raise KeyringError("keyring is locked")

    def delete_password(self, service, username):
        raise KeyringError("keyring is locked")


def _install_keyring(backend):
    previous = keyring.get_keyring()
    keyring.set_keyring(backend)
    return previous


@pytest.fixture
def memory_keyring():
    """Replace the system keyring with an in-memory backend."""
    backend = MemoryKeyring()
    previous = _install_keyring(backend)
    yield backend
    keyring.set_keyring(previous)


@pytest.fixture
def locked_keyring():
    """Replace the system keyring with a backend that always fails."""
    backend = LockedKeyring()
    previous = _install_keyring(backend)
    yield backend
    keyring.set_keyring(previous)


@pytest.fixture
def keyring_store(memory_keyring, tmp_path):
    """Keyring-backed store with its identity hint file under tmp_path."""
    return KeyringCredentialStore(service="gcloud-identity-token-test", hint_file=str(tmp_path / "identity.email"))


@pytest.fixture
def file_store(tmp_path):
    """File-backed store under tmp_path."""
    return FileCredentialStore(str(tmp_path / "cache" / "tokens.json"))


@pytest.fixture
def client_config():
    """OAuth client configuration pointing at a mocked token endpoint."""
    return ClientConfig(
        client_id="test-client",
        client_secret="test-secret",
        scopes="openid email",
        auth_uri=AUTH_URI,
        token_uri=TOKEN_URI,
        redirect_port=0,
    )
