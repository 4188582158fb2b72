"""Configuration loader for gcloud-identity-token

Values are resolved with the following priority:
1. Variables already set in the process environment
2. Entries of the .env file, loaded into the environment at startup
3. Hardcoded defaults
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class ConfigLoader:
    """Handles loading configuration from the environment and a .env file"""

    def __init__(self, env_path: Optional[str] = None):
        """Initialize the config loader

        Args:
            env_path: Optional path to .env file.
                     Defaults to '.env' in the current directory.
        """
        self.env_path = Path(env_path) if env_path else Path(".env")
        self._load_env_file()

    def _load_env_file(self) -> bool:
        """Copy .env entries into the environment without overriding set variables

        Returns:
            True if a .env file was found
        """
        if not self.env_path.is_file():
            logger.debug(f"No .env file at {self.env_path}")
            return False
        load_dotenv(dotenv_path=self.env_path, override=False)
        logger.debug(f"Loaded .env entries from {self.env_path}")
        return True

    def get(self, env_var: str, default: Any) -> Any:
        """Get a configuration value

        Variables already set in the process environment win over the .env
        file (load_dotenv never overrides them), and either wins over
        ``default``. Values from the environment are coerced to the type of
        ``default``. A string starting with ``~/`` is expanded to the home
        directory wherever it came from.

        Args:
            env_var: Environment variable name to check
            default: Value used when the variable is unset or cannot be parsed

        Returns:
            The resolved configuration value
        """
        env_value = os.getenv(env_var)
        value = default if env_value is None else self._coerce(env_var, env_value, default)

        if isinstance(value, str) and value.startswith("~/"):
            return str(Path(value).expanduser())
        return value

    @staticmethod
    def _coerce(env_var: str, env_value: str, default: Any) -> Any:
        """Convert a raw environment string to the type of default"""
        # bool first: it is a subclass of int
        if isinstance(default, bool):
            return env_value.strip().lower() in ("true", "1", "yes", "on")
        for kind in (int, float):
            if isinstance(default, kind):
                try:
                    return kind(env_value)
                except ValueError:
                    logger.warning(f"Invalid {kind.__name__} for {env_var}={env_value!r}, using default: {default}")
                    return default
        return env_value


_config_loader = None


def get_config_loader() -> ConfigLoader:
    """Get or create the global ConfigLoader instance"""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader
