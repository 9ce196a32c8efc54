from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

# Paths that don't require authentication
PUBLIC_PATHS = {
    "/health",
}

# Prefixes that are always public (API docs)
PUBLIC_PREFIXES = (
    "/docs",
    "/openapi",
    "/redoc",
)


class AuthMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES):
            return await call_next(request)

        # CORS preflight carries no credentials
        if request.method == "OPTIONS":
            return await call_next(request)

        # All other paths require a Bearer token
        auth_header = request.headers.get("Authorization", "")
        if auth_header.lower().startswith("bearer "):
            # Token present; get_current_user validates it
            return await call_next(request)

        # No token
        return JSONResponse(
            status_code=401,
            content={"error": "unauthorized", "detail": "Not authenticated"},
        )
