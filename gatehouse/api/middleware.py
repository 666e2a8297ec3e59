from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

# Pages that carry credentials or per-user content must never be cached.
NO_STORE_PREFIXES = ("/login", "/register", "/dashboard", "/logout")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        response.headers.setdefault(
            "Content-Security-Policy",
            "default-src 'self'; style-src 'self' 'unsafe-inline'; base-uri 'self'; frame-ancestors 'none'",
        )

        settings = getattr(request.app.state, "settings", None)
        if request.url.scheme == "https" or (settings and settings.cookie_secure):
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000")

        if request.url.path.startswith(NO_STORE_PREFIXES):
            response.headers.setdefault("Cache-Control", "no-store")
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, max_bytes: int) -> None:
        super().__init__(app)
        self.max_bytes = max(1, int(max_bytes))

    async def dispatch(self, request: Request, call_next):
        cl = request.headers.get("content-length")
        if cl:
            try:
                too_large = int(cl) > self.max_bytes
            except ValueError:
                return PlainTextResponse("Invalid Content-Length", status_code=400)
            if too_large:
                return PlainTextResponse("Request too large", status_code=413)
        return await call_next(request)
