from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from filevault import __version__
from filevault.Config import ConfigManager
from filevault.FileVault import FileVault
from filevault.SecurityManager import SharedSecretAuth
from filevault.shared.gate import GateLogger

from portal import lifecycle
from portal.api import config as config_api
from portal.api import files as files_api
from portal.api import health as health_api
from portal.middleware.security import BasicAuthMiddleware

_log = GateLogger.get("Portal")


def create_app(config: Optional[ConfigManager] = None) -> FastAPI:
    """
    Build the application.

    The vault and the authenticator are constructed once here and passed
    to the routers and middleware that use them.
    """
    config = config or ConfigManager()
    GateLogger.set_level(config.get("LOG_LEVEL", "INFO"))

    vault = FileVault(config.vault_config())
    auth = SharedSecretAuth(*config.credentials())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await lifecycle.startup(vault, config)
        yield
        await lifecycle.shutdown()

    app = FastAPI(title="FileVault", version=__version__, lifespan=lifespan)
    app.state.vault = vault
    app.state.config = config

    app.add_middleware(BasicAuthMiddleware, auth=auth)

    app.include_router(health_api.create_router({"FileVault": vault}))
    app.include_router(files_api.create_router(vault))
    app.include_router(config_api.create_router(config))

    # Pre-built UI; index.html is served for "/"
    static_dir = config.get("STATIC_DIR")
    if static_dir and os.path.isdir(static_dir):
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
    else:
        _log.info(f"No static UI directory at {static_dir!r}; serving API only")

    return app


def main():
    import uvicorn

    config = ConfigManager()
    uvicorn.run(
        create_app(config),
        host=config.get("HOST", "0.0.0.0"),
        port=config.get("PORT", 8000),
        log_level=str(config.get("LOG_LEVEL", "INFO")).lower(),
    )


if __name__ == "__main__":
    main()
