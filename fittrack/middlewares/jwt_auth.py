from typing import List

from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from fittrack.core.logger import get_logger
from fittrack.core.security import decode_access_token
from fittrack.exceptions.errors import AuthenticationError
from fittrack.persistence import Principal
from fittrack.repositories.users import UserRows

logger = get_logger("jwt_auth_middleware")

user_rows = UserRows()

whitelisted_routes = [
    "/", "/docs", "/openapi.json", "/redoc", "/favicon.ico", "/health",
    "/api/v1/auth",
]


class JWTAuthMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, whitelisted_routes: List[str] = None):
        super().__init__(app)
        self.whitelisted_routes = whitelisted_routes or []

    def _is_whitelisted(self, path: str) -> bool:
        """Check if the route is whitelisted (public)"""
        for route in self.whitelisted_routes:
            if path == route:
                return True
            # "/" only whitelists the root itself
            if route != "/" and path.startswith(route.rstrip("/") + "/"):
                return True
        return False

    @staticmethod
    def _unauthorized(message: str) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"error": message})

    async def dispatch(self, request: Request, call_next):
        """Validate the bearer token and attach the caller as ``request.state.principal``."""
        if self._is_whitelisted(request.url.path):
            return await call_next(request)

        # CORS preflight
        if request.method == "OPTIONS":
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            logger.warning(f"Missing or invalid Authorization header for: {request.url.path}")
            return self._unauthorized("Missing or invalid authorization token")

        claims = decode_access_token(auth_header[len("Bearer "):].strip())
        if not claims or not claims.get("sub"):
            logger.warning(f"Rejected token for: {request.url.path}")
            return self._unauthorized("Invalid or expired token")

        principal = Principal.from_claims(claims)

        # Tokens issued while the relational store was down carry no mysqlId
        stores = getattr(request.app.state, "stores", None)
        if principal.mysql_id is None and principal.username and stores is not None and stores.mode.uses_relational:
            principal.current_user = await stores.relational.fetch(
                lambda session: user_rows.find_by_username(session, principal.username),
                label="current user lookup",
            )

        request.state.principal = principal
        logger.debug(f"Authenticated user: {principal.username}")
        return await call_next(request)


def get_principal(request: Request) -> Principal:
    """FastAPI dependency returning the authenticated caller."""
    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise AuthenticationError("User not authenticated")
    return principal
