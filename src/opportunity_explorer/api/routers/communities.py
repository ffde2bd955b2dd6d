"""Communities Router - subreddit listings for the dashboard."""

from datetime import datetime, timezone

from fastapi import APIRouter
from starlette.responses import JSONResponse

from opportunity_explorer.api.middleware.security_guard import SecureRequestContext, SecurityGuard
from opportunity_explorer.api.params import get_store, limit_param
from opportunity_explorer.api.schemas import CommunityOut, SubredditOut
from opportunity_explorer.domain.models import AuthRequirement
from opportunity_explorer.domain.policies import SecurityProfileRegistry


PUBLIC_COMMUNITY_LIMIT = 20
USER_COMMUNITY_LIMIT_MAX = 50
SUBREDDIT_LIMIT_MAX = 50


async def get_communities(context: SecureRequestContext) -> JSONResponse:
    """Top communities for anonymous visitors."""
    communities, total = await get_store(context.request).get_communities(PUBLIC_COMMUNITY_LIMIT)
    return JSONResponse(
        {
            "success": True,
            "data": [CommunityOut.model_validate(c).to_json() for c in communities],
            "total": total,
        }
    )


async def get_user_communities(context: SecureRequestContext) -> JSONResponse:
    """Communities with analytics for signed-in users."""
    request = context.request
    limit = limit_param(request, 10, maximum=USER_COMMUNITY_LIMIT_MAX)
    search_term = request.query_params.get("search") or None

    communities, total = await get_store(request).get_communities(limit, search_term=search_term)
    return JSONResponse(
        {
            "data": [CommunityOut.model_validate(c).to_json() for c in communities],
            "meta": {
                "count": len(communities),
                "total": total,
                "limit": limit,
                "searchTerm": search_term,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "requestedBy": context.user_id,
                "securityLevel": "authenticated",
            },
        }
    )


async def get_subreddits(context: SecureRequestContext) -> JSONResponse:
    limit = limit_param(context.request, 5, maximum=SUBREDDIT_LIMIT_MAX)
    subreddits = await get_store(context.request).get_simple_subreddits(limit)
    return JSONResponse([SubredditOut.model_validate(s).to_json() for s in subreddits])


def create_router(guard: SecurityGuard, profiles: SecurityProfileRegistry) -> APIRouter:
    router = APIRouter(prefix="/api", tags=["Communities"])
    public = profiles.get_profile("public")
    user = profiles.get_profile("user")

    router.add_api_route(
        "/database/communities",
        guard.wrap(public.to_config(limit_users=False), get_communities),
        methods=["GET"],
    )
    router.add_api_route(
        "/database/user-communities",
        guard.wrap(user.to_config(auth=AuthRequirement.REQUIRED), get_user_communities),
        methods=["GET"],
    )
    router.add_api_route(
        "/subreddits",
        guard.wrap(public.to_config(limit_users=False), get_subreddits),
        methods=["GET"],
    )
    return router
