"""
Shared utilities for FileVault gates.
"""

from filevault.shared.gate import (
    GateLogger,
    GateErrorHandler,
    GateHealth,
    build_health_status,
    ensure_directory,
)

__all__ = [
    "GateLogger",
    "GateErrorHandler",
    "GateHealth",
    "build_health_status",
    "ensure_directory",
]
