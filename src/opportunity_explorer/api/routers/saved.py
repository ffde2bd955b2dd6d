"""Saved Ideas Router - bookmarks of the signed-in user."""

from fastapi import APIRouter, HTTPException
from starlette.responses import JSONResponse

from opportunity_explorer.api.middleware.security_guard import SecureRequestContext, SecurityGuard
from opportunity_explorer.api.params import get_store, limit_param, read_save_request
from opportunity_explorer.api.schemas import BookmarkOut
from opportunity_explorer.domain.exceptions import OpportunityNotFoundError
from opportunity_explorer.domain.models import AuthRequirement
from opportunity_explorer.domain.policies import SecurityProfileRegistry


SAVED_LIMIT_MAX = 100


async def get_saved(context: SecureRequestContext) -> JSONResponse:
    limit = limit_param(context.request, 20, maximum=SAVED_LIMIT_MAX)
    bookmarks = await get_store(context.request).get_bookmarks(context.user_id, limit=limit)
    return JSONResponse(
        {
            "success": True,
            "data": [BookmarkOut.model_validate(b).to_json() for b in bookmarks],
        }
    )


async def save_idea(context: SecureRequestContext) -> JSONResponse:
    payload = await read_save_request(context.request)
    try:
        saved = await get_store(context.request).add_bookmark(context.user_id, payload.idea_id)
    except OpportunityNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)

    return JSONResponse({"success": True, "data": {"saved": saved}}, status_code=201)


async def unsave_idea(context: SecureRequestContext) -> JSONResponse:
    payload = await read_save_request(context.request)
    removed = await get_store(context.request).remove_bookmark(context.user_id, payload.idea_id)
    return JSONResponse({"success": True, "data": {"removed": removed}})


def create_router(guard: SecurityGuard, profiles: SecurityProfileRegistry) -> APIRouter:
    router = APIRouter(prefix="/api/user", tags=["Saved Ideas"])
    config = profiles.get_profile("user").to_config(auth=AuthRequirement.REQUIRED)

    router.add_api_route("/saved", guard.wrap(config, get_saved), methods=["GET"])
    router.add_api_route("/saved", guard.wrap(config, save_idea), methods=["POST"])
    router.add_api_route("/saved", guard.wrap(config, unsave_idea), methods=["DELETE"])
    return router
