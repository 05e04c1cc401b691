from __future__ import annotations

from filevault.shared.gate import GateErrorHandler, GateLogger

# Lifecycle logger
_log = GateLogger.get("Lifecycle")


@GateErrorHandler.wrap("Lifecycle", "Config check", default_return=False)
def report_config(config) -> bool:
    """Log configuration problems; never blocks startup."""
    is_valid, errors = config.validate()
    for error in errors:
        _log.warning(error)
    return is_valid


async def startup(vault, config):
    """Log startup state once the app begins serving."""
    report_config(config)

    if not vault.is_healthy():
        _log.error("Vault root is not readable and writable")

    allowed = vault.allowed_types()
    if allowed is not None and not allowed:
        _log.warning("ALLOWED_EXTENSIONS is empty; every upload will be rejected")

    _log.info("FileVault started")


async def shutdown():
    """Cleanup on server shutdown."""
    _log.info("FileVault stopped")


__all__ = ["startup", "shutdown", "report_config"]
