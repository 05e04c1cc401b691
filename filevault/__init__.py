"""
FileVault - a confined, shared-secret file browser.

Gates:
- FileVault: path confinement, listing, search and uploads
- Config: schema-driven configuration
- SecurityManager: shared-secret Basic authentication
"""

from filevault.FileVault import FileVault, VaultConfig
from filevault.Config import ConfigManager
from filevault.SecurityManager import SharedSecretAuth

__version__ = "0.1.0"

__all__ = ["FileVault", "VaultConfig", "ConfigManager", "SharedSecretAuth", "__version__"]
