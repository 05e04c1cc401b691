"""
FileVault Configuration Manager.

Centralized configuration with:
- Schema-driven validation
- Environment variable (and .env) lookup
- Optional JSON config file
- .env.example generation
"""

import json
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from dotenv import load_dotenv

from filevault.shared.gate import GateLogger
from filevault.FileVault.models import VaultConfig

from filevault.Config.schema import (
    CONFIG_SCHEMA,
    ConfigField,
    ConfigType,
    ConfigCategory,
)

_log = GateLogger.get("Config")


class ConfigManager:
    """
    Manages FileVault configuration.

    Priority order:
    1. Explicit overrides
    2. Environment variables (after loading .env)
    3. JSON config file
    4. Schema defaults

    Built once at startup and handed to whatever needs it.
    """

    def __init__(
        self,
        env_file: Optional[Union[str, Path]] = None,
        config_json: Optional[Union[str, Path]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ):
        self._env_file = Path(env_file) if env_file else None
        self._config_json = Path(config_json) if config_json else None
        self._overrides = dict(overrides or {})
        self._cache: Dict[str, Any] = {}
        self._load()

    def _load(self):
        """Load configuration from all sources."""
        if self._env_file is not None:
            if self._env_file.exists():
                load_dotenv(self._env_file)
        else:
            load_dotenv()

        json_config = {}
        if self._config_json is not None and self._config_json.exists():
            try:
                with open(self._config_json, encoding="utf-8") as f:
                    json_config = json.load(f)
            except (json.JSONDecodeError, IOError) as e:
                _log.warning(f"Ignoring unreadable config file {self._config_json}: {e}")

        for field in CONFIG_SCHEMA:
            value = self._overrides.get(field.key)

            if value is None:
                value = os.environ.get(field.env_var)

            if value is None and field.key in json_config:
                value = json_config[field.key]

            if value is None:
                value = field.default

            self._cache[field.key] = self._convert_type(value, field.config_type)

    def _convert_type(self, value: Any, config_type: ConfigType) -> Any:
        """Convert value to appropriate type."""
        if value is None:
            return None

        try:
            if config_type == ConfigType.INTEGER:
                return int(value)
            elif config_type == ConfigType.BOOLEAN:
                if isinstance(value, bool):
                    return value
                return str(value).lower() in ("true", "1", "yes", "on")
            elif config_type == ConfigType.LIST:
                if isinstance(value, list):
                    return [str(v).strip() for v in value if str(v).strip()]
                return [v.strip() for v in str(value).split(",") if v.strip()]
            else:
                return str(value) if value else None
        except (ValueError, TypeError):
            return value

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        value = self._cache.get(key)
        return default if value is None else value

    def get_all(self, include_secrets: bool = False) -> Dict[str, Any]:
        """Get all configuration values."""
        result = {}
        for field in CONFIG_SCHEMA:
            value = self._cache.get(field.key)
            if field.sensitive and not include_secrets:
                result[field.key] = "****" if value else None
            else:
                result[field.key] = value
        return result

    def validate(self) -> Tuple[bool, List[str]]:
        """
        Validate configuration.

        Returns:
            (is_valid, list of error messages)
        """
        errors = []

        for field in CONFIG_SCHEMA:
            value = self._cache.get(field.key)

            if field.required and (value is None or value == ""):
                errors.append(f"Required config missing: {field.key}")
                continue

            if value is not None and field.validation:
                if not re.match(field.validation, str(value)):
                    errors.append(f"Invalid format for {field.key}")

            if value and field.options and value not in field.options:
                errors.append(f"Invalid option for {field.key}: {value}")

        return len(errors) == 0, errors

    def vault_config(self) -> VaultConfig:
        """Build the read-only vault configuration."""
        return VaultConfig(
            root_path=self.get("VAULT_ROOT"),
            allowed_extensions=self._cache.get("ALLOWED_EXTENSIONS"),
            max_upload_mb=self.get("MAX_UPLOAD_MB"),
            default_page_size=self.get("DEFAULT_PAGE_SIZE"),
            max_page_size=self.get("MAX_PAGE_SIZE"),
            follow_symlinks=self.get("FOLLOW_SYMLINKS"),
        )

    def credentials(self) -> Tuple[str, Optional[str]]:
        """(username, password) for the shared-secret check."""
        return self.get("VAULT_USERNAME", ""), self._cache.get("VAULT_PASSWORD")

    def create_env_template(self) -> str:
        """Generate .env.example template."""
        lines = [
            "# FileVault Configuration",
            "# Copy this file to .env and fill in your values",
            "",
        ]

        current_category = None
        for field in CONFIG_SCHEMA:
            if field.category != current_category:
                current_category = field.category
                lines.append(f"# === {current_category.value.title()} ===")
                lines.append("")

            lines.append(f"# {field.description}")
            if field.required:
                lines.append("# (REQUIRED)")
            if field.options:
                lines.append(f"# Options: {', '.join(field.options)}")

            default = "" if field.sensitive or field.default is None else field.default
            lines.append(f"{field.env_var}={default}")
            lines.append("")

        return "\n".join(lines)


__all__ = [
    "ConfigManager",
    "ConfigField",
    "ConfigType",
    "ConfigCategory",
    "CONFIG_SCHEMA",
]
