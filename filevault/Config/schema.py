"""
Configuration schema for FileVault.

Defines all configurable options with metadata for validation,
documentation, and template generation.
"""

from enum import Enum
from typing import List, Any
from dataclasses import dataclass


class ConfigType(Enum):
    """Configuration value types."""
    STRING = "string"
    SECRET = "secret"      # Masked in output, never logged
    INTEGER = "integer"
    BOOLEAN = "boolean"
    PATH = "path"          # File system path
    LIST = "list"          # Comma-separated values


class ConfigCategory(Enum):
    """Configuration categories for grouping."""
    STORAGE = "storage"
    UPLOADS = "uploads"
    AUTH = "auth"
    SERVER = "server"


@dataclass
class ConfigField:
    """Definition of a configuration field."""
    key: str
    description: str
    config_type: ConfigType
    category: ConfigCategory
    required: bool = False
    default: Any = None
    env_var: str = None          # Override env var name (defaults to key)
    validation: str = None       # Regex pattern
    options: List[str] = None    # For enumerated types
    sensitive: bool = False

    def __post_init__(self):
        if self.env_var is None:
            self.env_var = self.key
        if self.config_type == ConfigType.SECRET:
            self.sensitive = True


# ==================== Schema Definition ====================

CONFIG_SCHEMA: List[ConfigField] = [
    # === Storage ===
    ConfigField(
        key="VAULT_ROOT",
        description="Root directory exposed by the file browser (created if missing)",
        config_type=ConfigType.PATH,
        category=ConfigCategory.STORAGE,
        default="./files",
    ),
    ConfigField(
        key="FOLLOW_SYMLINKS",
        description="Allow symlinks whose target stays inside the root",
        config_type=ConfigType.BOOLEAN,
        category=ConfigCategory.STORAGE,
        default=True,
    ),
    ConfigField(
        key="DEFAULT_PAGE_SIZE",
        description="Directory listing page size when the client sends none",
        config_type=ConfigType.INTEGER,
        category=ConfigCategory.STORAGE,
        default=50,
        validation=r"^[1-9][0-9]*$",
    ),
    ConfigField(
        key="MAX_PAGE_SIZE",
        description="Upper bound for the listing page size",
        config_type=ConfigType.INTEGER,
        category=ConfigCategory.STORAGE,
        default=1000,
        validation=r"^[1-9][0-9]*$",
    ),

    # === Uploads ===
    ConfigField(
        key="ALLOWED_EXTENSIONS",
        description="Upload extension allow-list, e.g. .pdf,.txt (unset or * = all, empty = none)",
        config_type=ConfigType.LIST,
        category=ConfigCategory.UPLOADS,
        default=None,
    ),
    ConfigField(
        key="MAX_UPLOAD_MB",
        description="Maximum size of a single uploaded file in MB",
        config_type=ConfigType.INTEGER,
        category=ConfigCategory.UPLOADS,
        default=100,
        validation=r"^[1-9][0-9]*$",
    ),

    # === Auth ===
    ConfigField(
        key="VAULT_USERNAME",
        description="Basic auth user name",
        config_type=ConfigType.STRING,
        category=ConfigCategory.AUTH,
        default="admin",
    ),
    ConfigField(
        key="VAULT_PASSWORD",
        description="Basic auth shared secret (unset = every protected request is denied)",
        config_type=ConfigType.SECRET,
        category=ConfigCategory.AUTH,
        required=True,
    ),

    # === Server ===
    ConfigField(
        key="STATIC_DIR",
        description="Directory with the pre-built web UI (served at / when present)",
        config_type=ConfigType.PATH,
        category=ConfigCategory.SERVER,
        default="./wwwroot",
    ),
    ConfigField(
        key="HOST",
        description="Server bind address",
        config_type=ConfigType.STRING,
        category=ConfigCategory.SERVER,
        default="0.0.0.0",
    ),
    ConfigField(
        key="PORT",
        description="Server port",
        config_type=ConfigType.INTEGER,
        category=ConfigCategory.SERVER,
        default=8000,
    ),
    ConfigField(
        key="LOG_LEVEL",
        description="Logging verbosity",
        config_type=ConfigType.STRING,
        category=ConfigCategory.SERVER,
        default="INFO",
        options=["DEBUG", "INFO", "WARNING", "ERROR"],
    ),
]
