"""
CORS policy evaluation for guarded operations.

Origins are checked against the operation's allow-list and the CORS headers
are written onto every response the guard returns, errors included.
"""

from typing import Optional, Sequence

from starlette.responses import Response

from opportunity_explorer.domain.policies import SecurityConfig


WILDCARD_ORIGIN = "*"


class CorsPolicy:
    """Origin allow-list checks and response header injection."""

    ALLOW_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
    ALLOW_HEADERS = "Content-Type, Authorization"
    MAX_AGE_SECONDS = 24 * 60 * 60

    def is_origin_allowed(
        self,
        origin: Optional[str],
        allowed_origins: Sequence[str],
    ) -> bool:
        # No Origin header means a same-origin request
        if not origin:
            return True
        return origin in allowed_origins or WILDCARD_ORIGIN in allowed_origins

    def apply_headers(
        self,
        response: Response,
        config: SecurityConfig,
        origin: Optional[str],
    ) -> Response:
        """
        Write CORS headers onto the response.

        The specific origin is echoed when allowed; "*" is only used when the
        wildcard is configured and no specific origin applies. Responses of
        operations without an allow-list are returned untouched.
        """
        if config.allowed_origins is None:
            return response

        if origin and self.is_origin_allowed(origin, config.allowed_origins):
            response.headers["Access-Control-Allow-Origin"] = origin
        elif WILDCARD_ORIGIN in config.allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = WILDCARD_ORIGIN

        response.headers["Access-Control-Allow-Methods"] = self.ALLOW_METHODS
        response.headers["Access-Control-Allow-Headers"] = self.ALLOW_HEADERS
        response.headers["Access-Control-Max-Age"] = str(self.MAX_AGE_SECONDS)
        return response
