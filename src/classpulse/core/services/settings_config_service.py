"""
Settings Configuration Service for ClassPulse

Centralized configuration read from properties files.

Configuration files:
- env.properties: Production configuration (default)
- env-test.properties: Test configuration (used when CLASSPULSE_TEST_MODE=1)

Selected keys can be overridden by environment variables
(CLASSPULSE_DB_PATH, CLASSPULSE_LOG_DIR).
"""

import os
import configparser
import logging
from pathlib import Path
from typing import Any, Dict, Optional


def get_config_file_path() -> str:
    """
    Determine the appropriate configuration file based on environment.

    Priority:
    1. CLASSPULSE_CONFIG_FILE environment variable (explicit override)
    2. env-test.properties (when CLASSPULSE_TEST_MODE=1)
    3. env.properties (production default)
    """
    explicit_config = os.environ.get("CLASSPULSE_CONFIG_FILE")
    if explicit_config and os.path.exists(explicit_config):
        return explicit_config

    search_paths = [
        Path.cwd(),
        # src/classpulse/core/services -> project root
        Path(__file__).resolve().parents[4],
    ]

    for base_path in search_paths:
        if os.environ.get("CLASSPULSE_TEST_MODE") == "1":
            test_config = base_path / "env-test.properties"
            if test_config.exists():
                return str(test_config)

        prod_config = base_path / "env.properties"
        if prod_config.exists():
            return str(prod_config)

    return "env.properties"


DEFAULTS: Dict[str, Dict[str, str]] = {
    "database": {
        "path": "classpulse.db",
        "echo": "false",
    },
    "security": {
        "jwt_algorithm": "HS256",
        "token_expiry_minutes": "30",
        "password_min_length": "8",
    },
    "enrollment": {
        "join_code_length": "6",
        "join_code_max_attempts": "5",
    },
    "logging": {
        "default_level": "INFO",
        "dir": "logs",
    },
    "server": {
        "host": "127.0.0.1",
        "port": "8000",
    },
}


class SettingsConfigService:
    """Service for managing application settings from properties files."""

    def __init__(self, config_file: Optional[str] = None):
        self.config_file = config_file or get_config_file_path()
        self.config = configparser.ConfigParser()
        self.logger = logging.getLogger(__name__)
        self.config.read_dict(DEFAULTS)
        self._load_config()

    def _load_config(self):
        """Layer the properties file (if any) over the built-in defaults."""
        if not os.path.exists(self.config_file):
            self.logger.warning(
                f"Config file {self.config_file} not found, using defaults"
            )
            return

        try:
            self.config.read(self.config_file, encoding="utf-8")
            self.logger.info(f"Configuration loaded from {self.config_file}")
        except configparser.Error as e:
            self.logger.error(f"Failed to load configuration: {e}")

    def get(self, section: str, key: str, fallback: Optional[str] = None) -> str:
        """Get a configuration value."""
        try:
            return self.config.get(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError):
            if fallback is not None:
                return fallback
            self.logger.warning(f"Configuration not found: {section}.{key}")
            return ""

    def getint(self, section: str, key: str, fallback: Optional[int] = None) -> int:
        """Get an integer configuration value."""
        try:
            return self.config.getint(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            if fallback is not None:
                return fallback
            self.logger.warning(f"Integer configuration not found: {section}.{key}")
            return 0

    def getboolean(
        self, section: str, key: str, fallback: Optional[bool] = None
    ) -> bool:
        """Get a boolean configuration value."""
        try:
            return self.config.getboolean(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            if fallback is not None:
                return fallback
            self.logger.warning(f"Boolean configuration not found: {section}.{key}")
            return False

    def get_database_path(self) -> str:
        return os.environ.get("CLASSPULSE_DB_PATH") or self.get("database", "path")

    def get_log_dir(self) -> str:
        return os.environ.get("CLASSPULSE_LOG_DIR") or self.get("logging", "dir")

    def get_security_defaults(self) -> Dict[str, Any]:
        return {
            "jwt_algorithm": self.get("security", "jwt_algorithm", "HS256"),
            "token_expiry_minutes": self.getint("security", "token_expiry_minutes", 30),
            "password_min_length": self.getint("security", "password_min_length", 8),
        }

    def get_enrollment_defaults(self) -> Dict[str, Any]:
        return {
            "join_code_length": self.getint("enrollment", "join_code_length", 6),
            "join_code_max_attempts": self.getint(
                "enrollment", "join_code_max_attempts", 5
            ),
        }


# Global instance
_settings_service: Optional[SettingsConfigService] = None


def get_settings_service(config_file: Optional[str] = None) -> SettingsConfigService:
    """
    Get the global settings service instance.

    Args:
        config_file: Optional path to config file. If None, auto-detects:
                    - env-test.properties when CLASSPULSE_TEST_MODE=1
                    - env.properties otherwise

    Returns:
        SettingsConfigService instance
    """
    global _settings_service
    if _settings_service is None:
        _settings_service = SettingsConfigService(config_file)
    return _settings_service


def reset_settings_service():
    """Reset the global settings service instance. Useful for testing."""
    global _settings_service
    _settings_service = None
