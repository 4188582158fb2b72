"""OAuth client credentials for the Google authorization flow

Client id and secret are read, in order of priority, from:
1. GCLOUD_OAUTH_CLIENT_ID / GCLOUD_OAUTH_CLIENT_SECRET
2. An explicit JSON file path, or GCLOUD_OAUTH_CLIENT_FILE
3. ~/.config/gcloud/application_default_credentials.json
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import settings

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when OAuth client credentials cannot be loaded"""


@dataclass
class ClientConfig:
    """Static OAuth client configuration

    Attributes:
        client_id: OAuth 2.0 client ID
        client_secret: OAuth 2.0 client secret
        scopes: Space separated scopes requested during authorization
        auth_uri: Authorization endpoint
        token_uri: Token endpoint used for exchange and refresh
        redirect_port: Loopback port for the redirect listener (0 = any free port)
    """
    client_id: str
    client_secret: str
    scopes: str = field(default_factory=lambda: settings.SCOPES)
    auth_uri: str = field(default_factory=lambda: settings.AUTH_URI)
    token_uri: str = field(default_factory=lambda: settings.TOKEN_URI)
    redirect_port: int = field(default_factory=lambda: settings.CALLBACK_PORT)


def _from_document(data: Any, source: str) -> ClientConfig:
    """Build a ClientConfig from a parsed credentials document

    Accepts flat ``{"client_id", "client_secret"}`` documents (gcloud
    application default credentials) as well as Google client secret files
    nested under ``installed`` or ``web``.
    """
    if not isinstance(data, dict):
        raise ConfigError(f"Client credentials in {source} must be a JSON object")

    for section in ("installed", "web"):
        if isinstance(data.get(section), dict):
            data = data[section]
            break

    client_id = data.get("client_id")
    client_secret = data.get("client_secret")
    if not client_id or not client_secret:
        raise ConfigError(f"Client credentials in {source} are missing client_id or client_secret")

    kwargs: Dict[str, Any] = {"client_id": client_id, "client_secret": client_secret}
    if data.get("auth_uri"):
        kwargs["auth_uri"] = data["auth_uri"]
    if data.get("token_uri"):
        kwargs["token_uri"] = data["token_uri"]
    return ClientConfig(**kwargs)


def load_client_config(path: Optional[str] = None) -> ClientConfig:
    """Load OAuth client credentials

    Args:
        path: Optional path to a credentials JSON file. Overrides
              GCLOUD_OAUTH_CLIENT_FILE and the gcloud default location,
              but not the client id/secret environment variables.

    Returns:
        ClientConfig with the resolved credentials

    Raises:
        ConfigError: If no usable credentials are found
    """
    client_id = os.getenv(settings.CLIENT_ID_ENV)
    client_secret = os.getenv(settings.CLIENT_SECRET_ENV)
    if client_id and client_secret:
        logger.debug(f"Using client credentials from {settings.CLIENT_ID_ENV}/{settings.CLIENT_SECRET_ENV}")
        return ClientConfig(client_id=client_id, client_secret=client_secret)

    file_path = Path(path or os.getenv(settings.CLIENT_FILE_ENV) or settings.DEFAULT_CLIENT_FILE).expanduser()
    if not file_path.exists():
        raise ConfigError(
            f"No OAuth client credentials found: set {settings.CLIENT_ID_ENV} and "
            f"{settings.CLIENT_SECRET_ENV}, or provide a credentials file (looked for {file_path})"
        )

    try:
        data = json.loads(file_path.read_text())
    except json.JSONDecodeError as e:
        raise ConfigError(f"Failed to parse {file_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read {file_path}: {e}") from e

    logger.debug(f"Loaded client credentials from {file_path}")
    return _from_document(data, str(file_path))
