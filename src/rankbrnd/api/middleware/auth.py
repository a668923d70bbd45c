"""
API-key authentication middleware.

When ``RANKBRND_API_KEY`` is set, every request must include a matching
``X-API-Key`` header (or ``?api_key=`` query param). Unauthenticated
requests receive a 401 problem response.

Bypass paths (no key required):
  - ``/health/*``
  - ``/docs``, ``/redoc``, ``/openapi.json``
  - ``/workers/*`` requests carrying ``x-cron-secret`` (checked by the
    worker dependencies instead)
"""

from __future__ import annotations

import hmac
import re

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

_BYPASS_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"^/health"),
    re.compile(r"/docs$"),
    re.compile(r"/redoc$"),
    re.compile(r"/openapi\.json$"),
]

_CRON_PATH = re.compile(r"/workers/")


def _is_bypass(request: Request) -> bool:
    path = request.url.path
    if _CRON_PATH.search(path) and request.headers.get("x-cron-secret"):
        return True
    return any(p.search(path) for p in _BYPASS_PATTERNS)


class AuthMiddleware(BaseHTTPMiddleware):
    """Reject requests that lack a valid API key.

    ``api_key=None`` disables enforcement.
    """

    def __init__(self, app: object, api_key: str | None = None) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self._api_key = api_key

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if self._api_key is None or _is_bypass(request):
            return await call_next(request)

        provided = request.headers.get("X-API-Key") or request.query_params.get("api_key") or ""
        if not hmac.compare_digest(provided, self._api_key):
            return JSONResponse(
                status_code=401,
                content={
                    "type": "about:blank",
                    "title": "Unauthorized",
                    "status": 401,
                    "detail": "Missing or invalid API key. Provide X-API-Key header.",
                    "instance": str(request.url.path),
                    "errors": [],
                },
            )

        return await call_next(request)
