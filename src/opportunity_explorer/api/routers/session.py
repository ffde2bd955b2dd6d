"""Session Router - throttled session refresh."""

import logging

from fastapi import APIRouter
from starlette.responses import JSONResponse

from opportunity_explorer.api.middleware.security_guard import SecureRequestContext, SecurityGuard
from opportunity_explorer.domain.exceptions import RateLimitExceededError
from opportunity_explorer.domain.models import AuthRequirement, IdentitySession, PublicMetadata
from opportunity_explorer.domain.policies import SecurityProfileRegistry

logger = logging.getLogger(__name__)


async def refresh_session(context: SecureRequestContext) -> JSONResponse:
    """
    Refresh the caller's session.

    At most 5 refreshes per principal per hour; further attempts get 429.
    """
    state = context.request.app.state
    principal = context.principal

    if not state.token_refresh_throttle.should_refresh(principal):
        logger.warning("Session refresh throttled for user %s", context.user_id)
        raise RateLimitExceededError("Too many session refresh attempts", scope="session")

    session = await state.identity_provider.refresh_session(
        IdentitySession(
            is_authenticated=True,
            user_id=principal.id,
            session_id=principal.session_id,
            public_metadata=PublicMetadata(
                roles=sorted(principal.roles),
                permissions=sorted(principal.permissions),
            ),
        )
    )
    return JSONResponse({"success": True, "data": {"sessionId": session.session_id}})


def create_router(guard: SecurityGuard, profiles: SecurityProfileRegistry) -> APIRouter:
    router = APIRouter(prefix="/api/auth", tags=["Session"])
    config = profiles.get_profile("user").to_config(auth=AuthRequirement.REQUIRED)

    router.add_api_route("/refresh", guard.wrap(config, refresh_session), methods=["POST"])
    return router
