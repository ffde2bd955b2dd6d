"""
Sign-in Redirect Middleware.

Keeps anonymous browsers out of dashboard pages. API paths are left to the
security guard, which answers with JSON instead of redirects.
"""

import logging
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from opportunity_explorer.domain.exceptions import InvalidSessionError
from opportunity_explorer.domain.models import Environment
from opportunity_explorer.interfaces.identity import IdentityProviderPort

logger = logging.getLogger(__name__)


CLOCK_SKEW_MARKERS = (
    "token-iat-in-the-future",
    "Clock skew",
    "JWT issued at date claim",
)
CLOCK_SKEW_CODES = {"TOKEN_IAT_IN_THE_FUTURE", "CLERK_JWT_EXPIRED"}
REDIRECT_LOOP_MARKERS = (
    "infinite redirect loop",
    "instance keys do not match",
)


class SignInRedirectMiddleware(BaseHTTPMiddleware):
    """
    Redirect anonymous page requests to the identity provider's sign-in page.

    Signed-in users landing on "/" are sent to the dashboard.
    """

    PUBLIC_PATHS = {
        "/",
        "/clock-error",
        "/404",
        "/health",
        "/docs",
        "/redoc",
        "/openapi.json",
        "/favicon.ico",
    }
    API_PREFIX = "/api/"
    CLOCK_ERROR_URL = "/clock-error?from=middleware"

    def __init__(
        self,
        app,
        provider: IdentityProviderPort,
        environment: Environment = Environment.DEVELOPMENT,
    ):
        super().__init__(app)
        self.provider = provider
        self.environment = environment

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if path.startswith(self.API_PREFIX):
            return await call_next(request)

        try:
            session = await self.provider.authenticate(request)
        except InvalidSessionError as e:
            return await self._handle_session_error(request, call_next, e)

        if path in self.PUBLIC_PATHS:
            if session.is_authenticated and path == "/":
                return RedirectResponse("/dashboard", status_code=307)
            return await call_next(request)

        if not session.is_authenticated:
            return self.provider.redirect_to_sign_in(request)

        return await call_next(request)

    async def _handle_session_error(
        self,
        request: Request,
        call_next: Callable,
        error: InvalidSessionError,
    ) -> Response:
        logger.error(
            "Identity provider error on %s: %s (code=%s)",
            request.url.path, error.message, error.code,
        )

        if request.url.path == "/clock-error":
            return await call_next(request)

        if self._is_clock_skew(error) or self._is_redirect_loop(error):
            logger.warning("Clock skew or redirect loop detected, redirecting to error page")
            return RedirectResponse(self.CLOCK_ERROR_URL, status_code=307)

        if self.environment == Environment.PRODUCTION:
            return RedirectResponse("/", status_code=307)

        if "bypass-auth" in request.query_params:
            logger.info("Explicit auth bypass requested for %s", request.url.path)
            return await call_next(request)

        logger.warning("Development mode: add ?bypass-auth=true to bypass the auth error")
        return RedirectResponse(self.CLOCK_ERROR_URL, status_code=307)

    @staticmethod
    def _is_clock_skew(error: InvalidSessionError) -> bool:
        return error.code in CLOCK_SKEW_CODES or any(
            marker in error.message for marker in CLOCK_SKEW_MARKERS
        )

    @staticmethod
    def _is_redirect_loop(error: InvalidSessionError) -> bool:
        return any(marker in error.message for marker in REDIRECT_LOOP_MARKERS)
