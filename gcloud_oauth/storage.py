"""Credential storage for Google OAuth tokens

Tokens are stored per Google account (keyed by the email in the ID token)
either in the system keyring or, when GCLOUD_IDENTITY_TOKEN_PATH is set, in a
JSON file at that path. The backend is chosen once per process by get_store().
"""

import json
import logging
import os
import platform
from pathlib import Path
from typing import Any, Dict, Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

import settings
from .errors import MalformedToken, StoreUnavailable
from .jwt_utils import extract_email
from .models import TokenBundle


logger = logging.getLogger(__name__)


def _decode_bundle(data: Any, source: str) -> Optional[TokenBundle]:
    """Deserialize a stored bundle, treating malformed data as missing"""
    try:
        return TokenBundle.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Ignoring malformed credentials in {source}: {e}")
        return None


class CredentialStore:
    """Interface shared by the storage backends"""

    backend_name = "base"

    def load(self, identity_hint: Optional[str] = None) -> Optional[TokenBundle]:
        """Load the cached bundle for an identity

        Args:
            identity_hint: Email of the account to load. When omitted the
                           most recently saved account is used.

        Returns:
            TokenBundle, or None if nothing usable is stored

        Raises:
            StoreUnavailable: If the backend cannot be read
        """
        raise NotImplementedError

    def save(self, bundle: TokenBundle) -> None:
        """Store a bundle under its scope_identity

        Raises:
            ValueError: If the bundle has no access token
            StoreUnavailable: If the backend cannot be written
        """
        raise NotImplementedError

    def delete(self, identity: Optional[str] = None) -> bool:
        """Remove the stored bundle for an identity

        Returns:
            True if an entry was removed
        """
        raise NotImplementedError

    def describe(self) -> str:
        """Human readable location of the stored credentials"""
        return self.backend_name

    @staticmethod
    def _check_persistable(bundle: TokenBundle) -> None:
        if not bundle.access_token:
            raise ValueError("Refusing to store a token bundle without an access token")
        if not bundle.scope_identity:
            raise ValueError("Refusing to store a token bundle without an identity")


class KeyringCredentialStore(CredentialStore):
    """Stores each account's bundle as a keyring password

    The keyring cannot enumerate entries, so the last saved identity is
    remembered in a small hint file and used when no identity is given.
    """

    backend_name = "keyring"

    def __init__(self, service: Optional[str] = None, hint_file: Optional[str] = None):
        self.service = service or settings.KEYRING_SERVICE
        self.hint_file = Path(hint_file or settings.IDENTITY_HINT_FILE).expanduser()

    def _active_identity(self) -> str:
        """Identity saved most recently, or the fixed default key"""
        try:
            identity = self.hint_file.read_text().strip()
        except OSError:
            return settings.DEFAULT_IDENTITY
        return identity or settings.DEFAULT_IDENTITY

    def _remember_identity(self, identity: str) -> None:
        try:
            self.hint_file.parent.mkdir(parents=True, exist_ok=True)
            self.hint_file.write_text(identity)
        except OSError as e:
            # Entry itself is stored; only the default-account lookup is affected
            logger.warning(f"Could not write identity hint {self.hint_file}: {e}")

    def load(self, identity_hint: Optional[str] = None) -> Optional[TokenBundle]:
        identity = identity_hint or self._active_identity()
        try:
            raw = keyring.get_password(self.service, identity)
        except KeyringError as e:
            raise StoreUnavailable(f"Keyring is unavailable: {e}") from e

        if raw is None:
            logger.debug(f"No keyring entry for {identity}")
            return None

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring malformed keyring entry for {identity}: {e}")
            return None

        return _decode_bundle(data, f"keyring entry {identity}")

    def save(self, bundle: TokenBundle) -> None:
        self._check_persistable(bundle)
        try:
            keyring.set_password(self.service, bundle.scope_identity, json.dumps(bundle.to_dict()))
        except KeyringError as e:
            raise StoreUnavailable(f"Could not write to keyring: {e}") from e

        self._remember_identity(bundle.scope_identity)
        logger.debug(f"Saved tokens for {bundle.scope_identity} to keyring service {self.service}")

    def delete(self, identity: Optional[str] = None) -> bool:
        identity = identity or self._active_identity()
        try:
            keyring.delete_password(self.service, identity)
        except PasswordDeleteError:
            return False
        except KeyringError as e:
            raise StoreUnavailable(f"Could not delete keyring entry: {e}") from e

        if self._active_identity() == identity:
            try:
                self.hint_file.unlink()
            except OSError:
                pass
        logger.info(f"Removed stored tokens for {identity}")
        return True

    def describe(self) -> str:
        return f"keyring ({self.service})"


class FileCredentialStore(CredentialStore):
    """Stores bundles for every account in one JSON file

    Layout: ``{"active": <email>, "tokens": {<email>: <bundle>}}``. A file
    holding a single bare bundle (older layout) is read as one entry.
    """

    backend_name = "file"

    def __init__(self, token_file: str):
        self.token_file = Path(token_file).expanduser()

    def _read_document(self) -> Dict[str, Any]:
        if not self.token_file.exists():
            return {}

        try:
            text = self.token_file.read_text()
        except OSError as e:
            raise StoreUnavailable(f"Could not read {self.token_file}: {e}") from e

        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring malformed token file {self.token_file}: {e}")
            return {}

        if not isinstance(document, dict):
            logger.warning(f"Ignoring malformed token file {self.token_file}: not a JSON object")
            return {}

        if "tokens" not in document and "access_token" in document:
            return self._upgrade_single_bundle(document)

        if not isinstance(document.get("tokens"), dict):
            document["tokens"] = {}
        return document

    def _upgrade_single_bundle(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Wrap a bare bundle document into the per-identity layout"""
        data = dict(data)
        if not data.get("scope_identity"):
            try:
                data["scope_identity"] = extract_email(data.get("id_token", ""))
            except MalformedToken:
                data["scope_identity"] = settings.DEFAULT_IDENTITY
        identity = data["scope_identity"]
        return {"active": identity, "tokens": {identity: data}}

    def _write_document(self, document: Dict[str, Any]) -> None:
        try:
            parent_dir = self.token_file.parent
            if not parent_dir.exists():
                parent_dir.mkdir(parents=True, exist_ok=True)
                if platform.system() != "Windows":
                    os.chmod(parent_dir, 0o700)

            self.token_file.write_text(json.dumps(document, indent=2))

            # Owner read/write only
            if platform.system() != "Windows":
                os.chmod(self.token_file, 0o600)
        except OSError as e:
            raise StoreUnavailable(f"Could not write {self.token_file}: {e}") from e

    def load(self, identity_hint: Optional[str] = None) -> Optional[TokenBundle]:
        document = self._read_document()
        tokens = document.get("tokens", {})
        if not tokens:
            return None

        if identity_hint:
            if identity_hint not in tokens:
                return None
            return _decode_bundle(tokens[identity_hint], f"{self.token_file} ({identity_hint})")

        active = document.get("active")
        candidates = [active] if active in tokens else []
        candidates += [identity for identity in tokens if identity != active]

        # First entry that decodes wins
        for identity in candidates:
            bundle = _decode_bundle(tokens[identity], f"{self.token_file} ({identity})")
            if bundle:
                return bundle
        return None

    def save(self, bundle: TokenBundle) -> None:
        self._check_persistable(bundle)
        document = self._read_document()
        document.setdefault("tokens", {})[bundle.scope_identity] = bundle.to_dict()
        document["active"] = bundle.scope_identity
        self._write_document(document)
        logger.debug(f"Saved tokens for {bundle.scope_identity} to {self.token_file}")

    def delete(self, identity: Optional[str] = None) -> bool:
        document = self._read_document()
        tokens = document.get("tokens", {})
        identity = identity or document.get("active")
        if not identity or identity not in tokens:
            return False

        del tokens[identity]
        if document.get("active") == identity:
            document["active"] = next(iter(tokens), None)
        self._write_document(document)
        logger.info(f"Removed stored tokens for {identity}")
        return True

    def describe(self) -> str:
        return f"file ({self.token_file})"


def select_store() -> CredentialStore:
    """Choose the storage backend from the environment

    Returns:
        FileCredentialStore if GCLOUD_IDENTITY_TOKEN_PATH is set,
        KeyringCredentialStore otherwise
    """
    token_path = os.getenv(settings.TOKEN_PATH_ENV)
    if token_path:
        logger.debug(f"{settings.TOKEN_PATH_ENV} is set, using file credential store")
        return FileCredentialStore(token_path)
    return KeyringCredentialStore()


_store: Optional[CredentialStore] = None


def get_store() -> CredentialStore:
    """Get or create the process-wide credential store"""
    global _store
    if _store is None:
        _store = select_store()
    return _store
