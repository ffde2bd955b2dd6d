"""
Security Guard.

Wraps API handlers in an ordered pipeline of policy gates (HTTPS, CORS,
IP rate limit, authentication, admin, roles, permissions, user rate limit)
and converts policy failures into JSON error responses.
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from opportunity_explorer.api.middleware.cors import CorsPolicy
from opportunity_explorer.api.middleware.identity import IdentityAdapter
from opportunity_explorer.domain.exceptions import (
    AuthenticationRequiredError,
    CorsViolationError,
    HttpsRequiredError,
    InsufficientPermissionsError,
    RateLimitExceededError,
    SecurityError,
)
from opportunity_explorer.domain.models import AuthRequirement, Principal
from opportunity_explorer.domain.policies import SecurityConfig
from opportunity_explorer.interfaces.rate_limiter import RateLimitStorePort

logger = logging.getLogger(__name__)


UNKNOWN_CLIENT_IP = "unknown"


@dataclass
class SecureRequestContext:
    """The inbound request enriched with the guard's findings."""

    request: Request
    principal: Optional[Principal]
    client_ip: str

    @property
    def user_id(self) -> Optional[str]:
        return self.principal.id if self.principal else None


HandlerResult = Optional[Response]
Handler = Callable[[SecureRequestContext], Union[HandlerResult, Awaitable[HandlerResult]]]
GuardedHandler = Callable[[Request], Awaitable[Response]]


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, preferring proxy headers."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    return (
        request.headers.get("x-real-ip")
        or request.headers.get("cf-connecting-ip")
        or (request.client.host if request.client else None)
        or UNKNOWN_CLIENT_IP
    )


class SecurityGuard:
    """
    Applies a SecurityConfig to API handlers.

    The IP and user stores must be distinct instances: IP limiting runs
    before authentication and user limiting after it, and their counters
    must never share a keyspace.
    """

    def __init__(
        self,
        identity: IdentityAdapter,
        ip_store: RateLimitStorePort,
        user_store: RateLimitStorePort,
        cors: Optional[CorsPolicy] = None,
    ):
        if ip_store is user_store:
            raise ValueError("IP and user rate limit stores must be separate instances")
        self.identity = identity
        self.ip_store = ip_store
        self.user_store = user_store
        self.cors = cors or CorsPolicy()

    def protect(self, config: SecurityConfig) -> Callable[[Handler], GuardedHandler]:
        """Decorator form of :meth:`wrap`."""

        def decorator(handler: Handler) -> GuardedHandler:
            return self.wrap(config, handler)

        return decorator

    def wrap(self, config: SecurityConfig, handler: Handler) -> GuardedHandler:
        """
        Build a request handler that runs the policy gates before ``handler``.

        The returned coroutine takes a Starlette Request, so it can be
        registered directly as a FastAPI route endpoint.
        """

        async def guarded(request: Request) -> Response:
            origin = request.headers.get("origin")
            try:
                return await self._handle(config, handler, request, origin)
            except SecurityError as error:
                logger.warning(
                    "%s %s rejected: %s (%s) client_ip=%s",
                    request.method, request.url.path, error.code, error.message,
                    get_client_ip(request),
                )
                return self.cors.apply_headers(self._error_response(error), config, origin)

        # FastAPI reads the endpoint signature, so copy only the metadata and
        # keep ``guarded``'s own (request: Request) signature.
        guarded.__name__ = getattr(handler, "__name__", guarded.__name__)
        guarded.__qualname__ = getattr(handler, "__qualname__", guarded.__qualname__)
        guarded.__doc__ = handler.__doc__
        return guarded

    async def _handle(
        self,
        config: SecurityConfig,
        handler: Handler,
        request: Request,
        origin: Optional[str],
    ) -> Response:
        client_ip = get_client_ip(request)

        # 1. HTTPS
        if config.https_only and request.url.scheme != "https":
            raise HttpsRequiredError()

        # 2. CORS
        if (
            config.allowed_origins is not None
            and origin
            and not self.cors.is_origin_allowed(origin, config.allowed_origins)
        ):
            raise CorsViolationError(origin=origin)

        # 3. IP rate limit, before authentication so anonymous floods are cheap to reject
        if config.ip_rate_limit and await self.ip_store.check(client_ip, config.ip_rate_limit):
            raise RateLimitExceededError(scope="ip")

        # 4. Authentication
        principal = await self.identity.current_principal(request)
        if config.auth == AuthRequirement.REQUIRED and principal is None:
            raise AuthenticationRequiredError()

        # 5. Admin
        if config.admin_only and principal and not self.identity.is_admin(principal):
            raise InsufficientPermissionsError("Admin access required")

        # 6. Roles (any of)
        if config.roles and principal and not self.identity.has_any_role(principal, config.roles):
            raise InsufficientPermissionsError(
                f"Required roles: {', '.join(sorted(config.roles))}"
            )

        # 7. Permissions (all of)
        if (
            config.permissions
            and principal
            and not self.identity.has_all_permissions(principal, config.permissions)
        ):
            raise InsufficientPermissionsError(
                f"Required permissions: {', '.join(sorted(config.permissions))}"
            )

        # 8. User rate limit, scoped to the real identity
        if (
            config.user_rate_limit
            and principal
            and await self.user_store.check(principal.id, config.user_rate_limit)
        ):
            raise RateLimitExceededError(scope="user")

        context = SecureRequestContext(
            request=request,
            principal=principal,
            client_ip=client_ip,
        )
        response = await self._invoke(handler, context)

        # Handlers that fall through to a sign-in page must still answer API
        # callers with JSON.
        if (
            (response is None or self._is_html(response))
            and config.auth == AuthRequirement.REQUIRED
            and principal is None
        ):
            response = self._error_response(AuthenticationRequiredError())

        if response is None:
            response = Response(status_code=204)

        return self.cors.apply_headers(response, config, origin)

    @staticmethod
    async def _invoke(handler: Handler, context: SecureRequestContext) -> HandlerResult:
        result: Any = handler(context)
        if inspect.isawaitable(result):
            result = await result
        return result

    @staticmethod
    def _is_html(response: Response) -> bool:
        return "text/html" in response.headers.get("content-type", "")

    @staticmethod
    def _error_response(error: SecurityError) -> JSONResponse:
        return JSONResponse(status_code=error.status_code, content=error.to_body())
