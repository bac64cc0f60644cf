"""
Configuration loader for the CIS provisioner.
Builds the raw configuration mapping from env files, environment variables and
an optional JSON file, and sets up logging.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .settings import REQUIRED_KEYS

# Keys used only by the command-line runner to reach the Auth0 Management API
OPTIONAL_KEYS = ("auth0_management_url", "auth0_management_token", "log_level", "debug")

SECRET_KEYS = ("changeapi_auth0_private_key", "personapi_client_secret", "auth0_management_token")


class ConfigLoader:
    """Loads configuration; environment variables win over the JSON file."""

    def __init__(self, config_file: Optional[str] = None, environment: Optional[str] = None,
                 base_path: Optional[Path] = None):
        """
        Initialize config loader.

        Args:
            config_file: Optional path to a JSON file holding configuration keys
            environment: Environment name ("dev", "prod"), selects envs/.env.<environment>
            base_path: Directory holding envs/ and relative config files
        """
        self.config_file = config_file
        self.config: Dict[str, Any] = {}
        self.environment = environment or "dev"
        self.base_path = base_path or Path.cwd()
        self.logger = logging.getLogger("cis_provisioner.config")
        self._load_environment_config()
        self._load_config()

    def _load_environment_config(self):
        """Load envs/.env, then the environment-specific file on top of it."""
        main_env_path = self.base_path / "envs" / ".env"
        if main_env_path.exists():
            load_dotenv(main_env_path, override=False)
            self.logger.debug("Loaded main env config from %s", main_env_path)

            env_from_file = os.getenv("CIS_ENVIRONMENT")
            if env_from_file:
                self.environment = env_from_file

        env_file_path = self.base_path / "envs" / f".env.{self.environment}"
        if env_file_path.exists():
            load_dotenv(env_file_path, override=True)
            self.logger.debug("Loaded %s specific config from %s", self.environment, env_file_path)

    def _load_config(self):
        """Load configuration from the JSON file, if one was given."""
        if not self.config_file:
            return
        config_path = Path(self.config_file)
        if not config_path.is_absolute():
            config_path = self.base_path / config_path
        try:
            with open(config_path, "r", encoding="utf-8") as fh:
                self.config = json.load(fh)
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file {config_path} not found")
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file {config_path}: {e}")
        self.logger.debug("Loaded configuration from: %s", config_path)

    def get(self, key: str, default: Any = None) -> Any:
        """Look a key up in the environment (upper-cased), then the JSON file."""
        env_value = os.getenv(key.upper())
        if env_value:
            return env_value
        return self.config.get(key, default)

    def as_configuration(self) -> Dict[str, Any]:
        """The raw mapping handed to the provisioning pipeline.

        Keys that are not set are left out so the configuration gate reports
        them as missing.
        """
        configuration = {}
        for key in REQUIRED_KEYS + OPTIONAL_KEYS:
            value = self.get(key)
            if value is not None:
                configuration[key] = value
        return configuration

    def is_debug_mode(self) -> bool:
        return str(self.get("debug", "false")).lower() in ("1", "true", "yes")

    def setup_logging(self):
        """Setup logging based on configuration."""
        setup_logging(self.get("log_level", "INFO"), self.is_debug_mode())

    def summary(self) -> str:
        """Configuration summary with secrets masked."""
        lines = [f"Configuration Summary ({self.environment}):"]
        for key in REQUIRED_KEYS:
            value = self.get(key)
            if value is None:
                shown = "<missing>"
            elif key in SECRET_KEYS or key == "changeapi_null_profile":
                shown = f"<{len(str(value))} chars>"
            else:
                shown = value
            lines.append(f"  {key}: {shown}")
        return "\n".join(lines)


def setup_logging(log_level: str = "INFO", debug: bool = False):
    level = getattr(logging, str(log_level).upper(), logging.INFO)
    format_str = "%(asctime)s - %(levelname)s - %(message)s" if debug else "%(message)s"

    logger = logging.getLogger("cis_provisioner")
    logger.setLevel(logging.DEBUG if debug else level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(format_str))
        logger.addHandler(handler)


def load_config(config_file: Optional[str] = None, environment: Optional[str] = None) -> ConfigLoader:
    """
    Load configuration from env files, the environment and an optional JSON file.

    Args:
        config_file: Path to a JSON configuration file
        environment: Environment name selecting envs/.env.<environment>

    Returns:
        ConfigLoader instance
    """
    return ConfigLoader(config_file=config_file, environment=environment)
