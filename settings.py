from pathlib import Path
from config.loader import get_config_loader

# Get the config loader instance
config = get_config_loader()

# Logging
LOG_LEVEL = config.get("LOG_LEVEL", "warning")

# Google OAuth endpoints (hardcoded - single identity provider)
AUTH_URI = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"
SCOPES = config.get("GCLOUD_OAUTH_SCOPES", "openid email")

# Client credential sources, checked in this order by config.credentials
CLIENT_ID_ENV = "GCLOUD_OAUTH_CLIENT_ID"
CLIENT_SECRET_ENV = "GCLOUD_OAUTH_CLIENT_SECRET"
CLIENT_FILE_ENV = "GCLOUD_OAUTH_CLIENT_FILE"
DEFAULT_CLIENT_FILE = str(Path.home() / ".config" / "gcloud" / "application_default_credentials.json")

# Redirect listener
# The redirect URI is http://127.0.0.1:<CALLBACK_PORT>/ and must be allowed for the client.
# Port 0 lets the OS pick a free port (works for Google "Desktop app" clients).
CALLBACK_HOST = "127.0.0.1"
CALLBACK_PORT = config.get("GCLOUD_OAUTH_CALLBACK_PORT", 8085)
CALLBACK_PATH = "/"
CALLBACK_TIMEOUT = config.get("GCLOUD_OAUTH_CALLBACK_TIMEOUT", 300.0)

# Per-request deadline for token endpoint calls, independent of CALLBACK_TIMEOUT
REQUEST_TIMEOUT = config.get("GCLOUD_OAUTH_REQUEST_TIMEOUT", 30.0)

# Access tokens are treated as stale this many seconds before their expiry
REFRESH_MARGIN = config.get("GCLOUD_OAUTH_REFRESH_MARGIN", 60)

# Credential storage
# When TOKEN_PATH_ENV is set the file backend is used unconditionally
TOKEN_PATH_ENV = "GCLOUD_IDENTITY_TOKEN_PATH"
KEYRING_SERVICE = config.get("GCLOUD_IDENTITY_KEYRING_SERVICE", "gcloud-identity-token")
IDENTITY_HINT_FILE = config.get("GCLOUD_IDENTITY_HINT_FILE", "~/.cache/gcloud-identity-token.email")
DEFAULT_IDENTITY = "default"

# Debug log written by `--debug`
DEBUG_LOG_FILE = "gcloud_identity_token_debug.log"
