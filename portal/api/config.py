from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse


def create_router(config) -> APIRouter:
    router = APIRouter()

    @router.get("/api/config")
    async def api_config_get():
        """Current configuration (secrets masked) with validation errors."""
        is_valid, errors = config.validate()
        return {
            "values": config.get_all(include_secrets=False),
            "valid": is_valid,
            "errors": errors,
        }

    @router.get("/api/config/template", response_class=PlainTextResponse)
    async def api_config_template():
        """Download .env.example template."""
        return config.create_env_template()

    return router


__all__ = ["create_router"]
