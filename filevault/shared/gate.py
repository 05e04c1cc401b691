"""
Shared Gate utilities for FileVault.

- GateLogger: "filevault.<Gate>" loggers with one package-level handler
- GateErrorHandler: logging decorator for best-effort lifecycle hooks
- GateHealth: protocol the health endpoint aggregates over
"""

from __future__ import annotations

import logging
from functools import wraps
from pathlib import Path
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

LOGGER_NAMESPACE = "filevault"
LOG_FORMAT = "[%(name)s] %(levelname)s: %(message)s"


class GateLogger:
    """
    Namespaced logging for the gates and the portal.

    A single StreamHandler sits on the "filevault" logger; gate loggers
    propagate to it, so LOG_LEVEL applies everywhere at once.
    """

    _configured = False

    @classmethod
    def _ensure_configured(cls):
        if cls._configured:
            return

        package_logger = logging.getLogger(LOGGER_NAMESPACE)
        if not package_logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            package_logger.addHandler(handler)
            package_logger.setLevel(logging.INFO)

        cls._configured = True

    @classmethod
    def get(cls, gate_name: str) -> logging.Logger:
        """Logger for one gate, e.g. GateLogger.get("FileVault")."""
        cls._ensure_configured()
        return logging.getLogger(f"{LOGGER_NAMESPACE}.{gate_name}")

    @classmethod
    def set_level(cls, level: Union[int, str], gate_name: Optional[str] = None):
        """
        Set the level for one gate, or for the whole package.

        Args:
            level: logging constant or a LOG_LEVEL name; unknown names mean INFO
            gate_name: Gate to adjust (None = package logger)
        """
        if isinstance(level, str):
            level = logging.getLevelName(level.upper())
            if not isinstance(level, int):
                level = logging.INFO

        if gate_name:
            cls.get(gate_name).setLevel(level)
        else:
            cls._ensure_configured()
            logging.getLogger(LOGGER_NAMESPACE).setLevel(level)


class GateErrorHandler:
    """
    Error logging for startup/shutdown hooks.

    Vault operations report failures through OperationResult instead.
    """

    @staticmethod
    def wrap(gate_name: str, operation: str, default_return: Any = None):
        """Log any exception from the wrapped hook and return default_return."""
        def decorator(func: Callable) -> Callable:
            @wraps(func)
            def wrapper(*args, **kwargs):
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    GateLogger.get(gate_name).error(f"{operation} failed: {e}")
                    return default_return
            return wrapper
        return decorator


@runtime_checkable
class GateHealth(Protocol):
    """What /api/health needs from a gate."""

    def is_healthy(self) -> bool:
        ...

    def get_health_status(self) -> Dict[str, Any]:
        ...

    def get_dependencies(self) -> List[str]:
        ...


def build_health_status(
    gate_name: str,
    checks: Dict[str, bool],
    dependencies: Optional[List[str]] = None,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Health payload for one gate; healthy only when every check passed.

    Returns:
        {"gate", "healthy", "dependencies", "checks", "details"}
    """
    return {
        "gate": gate_name,
        "healthy": all(checks.values()),
        "dependencies": dependencies or [],
        "checks": checks,
        "details": details or {},
    }


def ensure_directory(path: Union[str, Path]) -> Path:
    """Create a directory and its parents if missing; returns it as a Path."""
    directory = Path(path).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    return directory
