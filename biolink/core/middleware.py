"""Response header middleware."""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Every response is JSON or a redirect, so nothing may be framed or loaded
STATIC_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds security headers to every response.

    Responses under ``no_store_prefixes`` (the short link redirects) also get
    ``Cache-Control: no-store`` so browsers and CDNs never replay a redirect
    without it being counted. HSTS is added when ``enable_hsts`` is set.
    """

    def __init__(
        self,
        app: object,
        enable_hsts: bool = False,
        hsts_max_age: int = 31536000,  # 1 year
        no_store_prefixes: tuple[str, ...] = ("/r/",),
    ) -> None:
        super().__init__(app)
        self.hsts_header = f"max-age={hsts_max_age}; includeSubDomains" if enable_hsts else None
        self.no_store_prefixes = no_store_prefixes

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        response = await call_next(request)

        response.headers.update(STATIC_HEADERS)
        if request.url.path.startswith(self.no_store_prefixes):
            response.headers["Cache-Control"] = "no-store"
        if self.hsts_header:
            response.headers["Strict-Transport-Security"] = self.hsts_header

        return response
