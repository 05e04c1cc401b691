from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware
from fastapi.responses import JSONResponse

from filevault.shared.gate import GateLogger

_log = GateLogger.get("Portal")


class BasicAuthMiddleware(BaseHTTPMiddleware):
    """Require the shared Basic credential on every non-public route."""

    # Routes that don't require credentials
    PUBLIC_PATHS = {
        "/api/health",
    }

    def __init__(self, app, auth):
        super().__init__(app)
        self._auth = auth

    def _challenge(self, detail: str) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content={"detail": detail},
            headers={"WWW-Authenticate": f'Basic realm="{self._auth.realm}"'},
        )

    async def dispatch(self, request, call_next):
        path = request.url.path

        for public_path in self.PUBLIC_PATHS:
            if path == public_path or path.startswith(public_path + "/"):
                return await call_next(request)

        header = request.headers.get("Authorization")
        if not header:
            return self._challenge("Authentication required")

        if not self._auth.check_header(header):
            client = request.client.host if request.client else "unknown"
            _log.warning(f"Rejected credentials from {client} for {path}")
            return self._challenge("Invalid credentials")

        return await call_next(request)


__all__ = ["BasicAuthMiddleware"]
