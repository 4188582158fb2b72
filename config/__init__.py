"""Configuration management package for gcloud-identity-token"""

from .loader import ConfigLoader, get_config_loader
from .credentials import ClientConfig, ConfigError, load_client_config

__all__ = [
    "ConfigLoader",
    "get_config_loader",
    "ClientConfig",
    "ConfigError",
    "load_client_config",
]
