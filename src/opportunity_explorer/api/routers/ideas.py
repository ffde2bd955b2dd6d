"""Ideas Router - business opportunity listings."""

from fastapi import APIRouter, HTTPException
from starlette.responses import JSONResponse

from opportunity_explorer.api.middleware.security_guard import SecureRequestContext, SecurityGuard
from opportunity_explorer.api.params import get_store, limit_param, offset_param
from opportunity_explorer.api.schemas import OpportunityOut
from opportunity_explorer.domain.policies import SecurityProfileRegistry


IDEAS_LIMIT_MAX = 100


async def list_ideas(context: SecureRequestContext) -> JSONResponse:
    """
    List business opportunities.

    Query parameters:
        limit, offset: Pagination (defaults 20 and 0, limit capped at 100)
        search: Free-text match, ordered by impact score
        tag: Only opportunities with this tag

    Filters combine: ``?search=x&tag=y`` returns matches carrying the tag.
    """
    request = context.request
    ideas = await get_store(request).list_opportunities(
        limit=limit_param(request, 20, maximum=IDEAS_LIMIT_MAX),
        offset=offset_param(request),
        search=request.query_params.get("search") or None,
        tag=request.query_params.get("tag") or None,
    )
    return JSONResponse(
        {
            "success": True,
            "data": [OpportunityOut.model_validate(i).to_json() for i in ideas],
        }
    )


async def get_idea(context: SecureRequestContext) -> JSONResponse:
    raw_id = context.request.path_params.get("opportunity_id", "")
    try:
        opportunity_id = int(raw_id)
    except ValueError:
        raise HTTPException(status_code=404, detail="Business opportunity not found")

    idea = await get_store(context.request).get_opportunity(opportunity_id)
    if idea is None:
        raise HTTPException(status_code=404, detail="Business opportunity not found")

    return JSONResponse({"success": True, "data": OpportunityOut.model_validate(idea).to_json()})


def create_router(guard: SecurityGuard, profiles: SecurityProfileRegistry) -> APIRouter:
    router = APIRouter(prefix="/api/ideas", tags=["Ideas"])
    config = profiles.get_profile("public").to_config(limit_users=False)

    router.add_api_route("", guard.wrap(config, list_ideas), methods=["GET"])
    router.add_api_route("/{opportunity_id}", guard.wrap(config, get_idea), methods=["GET"])
    return router
