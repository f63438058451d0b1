"""
Authentication middleware for role-based route protection.
"""

import logging
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from shopledger.auth.jwt import get_token_from_cookie, verify_token

logger = logging.getLogger(__name__)

# Route prefixes that require a valid token
PROTECTED_PREFIXES = ("/api/admin", "/api/panel")


def _json_error(detail: str, status_code: int) -> Response:
    return Response(
        content=f'{{"detail": "{detail}"}}',
        status_code=status_code,
        media_type="application/json",
    )


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Coarse role gate in front of the routers.

    - /api/admin/* requires the admin role
    - /api/panel/* requires any authenticated user

    Route dependencies still perform the authoritative checks against
    the database (inactive accounts, exact roles).
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        path = request.url.path

        if not path.startswith(PROTECTED_PREFIXES):
            return await call_next(request)

        token = get_token_from_cookie(request)
        payload = verify_token(token) if token else None

        if not payload:
            return _json_error("Not authenticated", 401)

        if path.startswith("/api/admin") and payload.get("role") != "admin":
            logger.warning(
                f"User {payload.get('user_id')} with role {payload.get('role')} denied {path}"
            )
            return _json_error("Admin access required", 403)

        return await call_next(request)
