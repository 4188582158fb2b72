"""
Google OAuth token lifecycle: login, caching and silent refresh
"""
from .errors import (
    AuthError,
    MalformedToken,
    StoreUnavailable,
    AuthorizationError,
    StateMismatch,
    AuthorizationTimeout,
    ProviderError,
    TokenExchangeError,
    RefreshFailure,
)
from .models import TokenBundle
from .jwt_utils import decode_jwt_claims, extract_email
from .pkce import PKCEPair, generate_pkce, create_state
from .callback_server import AuthorizationCode, RedirectListener
from .authorization import (
    FlowState,
    AuthorizationFlow,
    build_authorization_url,
)
from .token_exchange import exchange_code_for_tokens, request_refreshed_tokens
from .token_refresh import needs_refresh, refresh
from .storage import (
    CredentialStore,
    KeyringCredentialStore,
    FileCredentialStore,
    select_store,
    get_store,
)
from .token_manager import TokenManager, get_token, get_token_async

__all__ = [
    # Errors
    "AuthError",
    "MalformedToken",
    "StoreUnavailable",
    "AuthorizationError",
    "StateMismatch",
    "AuthorizationTimeout",
    "ProviderError",
    "TokenExchangeError",
    "RefreshFailure",
    # Models
    "TokenBundle",
    # ID token
    "decode_jwt_claims",
    "extract_email",
    # Authorization
    "PKCEPair",
    "generate_pkce",
    "create_state",
    "AuthorizationCode",
    "RedirectListener",
    "FlowState",
    "AuthorizationFlow",
    "build_authorization_url",
    # Token endpoint
    "exchange_code_for_tokens",
    "request_refreshed_tokens",
    "needs_refresh",
    "refresh",
    # Storage
    "CredentialStore",
    "KeyringCredentialStore",
    "FileCredentialStore",
    "select_store",
    "get_store",
    # Token Manager
    "TokenManager",
    "get_token",
    "get_token_async",
]
