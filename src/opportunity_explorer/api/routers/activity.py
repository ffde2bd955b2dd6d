"""
User Activity Router - bookmarks status, recently viewed and activity log.

Backs the front end's `/api/user/track-activity` and
`/api/user/bookmarks?opportunityId=` calls.
"""

import logging

from fastapi import APIRouter, HTTPException
from pydantic import ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse

from opportunity_explorer.api.middleware.security_guard import SecureRequestContext, SecurityGuard
from opportunity_explorer.api.params import get_store, int_param, limit_param, offset_param
from opportunity_explorer.api.schemas import (
    BookmarkRequest,
    RecentlyViewedOut,
    TrackActivityRequest,
    UserActivityOut,
    UserDashboardOut,
)
from opportunity_explorer.domain.exceptions import OpportunityNotFoundError
from opportunity_explorer.domain.models import AuthRequirement, UserActivity
from opportunity_explorer.domain.policies import SecurityProfileRegistry

logger = logging.getLogger(__name__)

RECENTLY_VIEWED_LIMIT_MAX = 20
ACTIVITY_LIMIT_MAX = 100
DAYS_BACK_MAX = 30


def opportunity_id_param(request: Request) -> int:
    raw = request.query_params.get("opportunityId")
    if raw is None:
        raise HTTPException(status_code=400, detail="Opportunity ID is required")
    try:
        return int(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid opportunity ID")


def days_param(request: Request, default: int) -> int:
    return int_param(request, "days", default, minimum=1, maximum=DAYS_BACK_MAX)


async def track_activity(context: SecureRequestContext) -> JSONResponse:
    try:
        body = await context.request.json()
        payload = TrackActivityRequest.model_validate(body)
    except (ValueError, ValidationError):
        raise HTTPException(status_code=400, detail="Invalid activity")

    await get_store(context.request).track_activity(
        UserActivity(
            user_id=context.user_id,
            activity_type=payload.activity_type,
            resource_id=payload.resource_id,
            resource_type=payload.resource_type,
            metadata=payload.metadata,
        )
    )
    return JSONResponse({"success": True})


async def get_bookmark_status(context: SecureRequestContext) -> JSONResponse:
    opportunity_id = opportunity_id_param(context.request)
    bookmarked = await get_store(context.request).is_bookmarked(context.user_id, opportunity_id)
    return JSONResponse({"success": True, "data": {"isBookmarked": bookmarked}})


async def add_bookmark(context: SecureRequestContext) -> JSONResponse:
    try:
        body = await context.request.json()
        payload = BookmarkRequest.model_validate(body)
    except (ValueError, ValidationError):
        raise HTTPException(status_code=400, detail="Invalid request body")
    if payload.opportunity_id is None:
        raise HTTPException(status_code=400, detail="Opportunity ID is required")

    try:
        saved = await get_store(context.request).add_bookmark(context.user_id, payload.opportunity_id)
    except OpportunityNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    return JSONResponse({"success": True, "data": {"saved": saved}}, status_code=201)


async def remove_bookmark(context: SecureRequestContext) -> JSONResponse:
    opportunity_id = opportunity_id_param(context.request)
    removed = await get_store(context.request).remove_bookmark(context.user_id, opportunity_id)
    return JSONResponse({"success": True, "data": {"removed": removed}})


async def get_recently_viewed(context: SecureRequestContext) -> JSONResponse:
    request = context.request
    views = await get_store(request).get_recently_viewed(
        context.user_id,
        limit=limit_param(request, 5, maximum=RECENTLY_VIEWED_LIMIT_MAX),
        days_back=days_param(request, 2),
    )
    return JSONResponse(
        {"success": True, "data": [RecentlyViewedOut.model_validate(v).to_json() for v in views]}
    )


async def get_activity_history(context: SecureRequestContext) -> JSONResponse:
    request = context.request
    history = await get_store(request).get_activity_history(
        context.user_id,
        limit=limit_param(request, 50, maximum=ACTIVITY_LIMIT_MAX),
        offset=offset_param(request),
    )
    return JSONResponse(
        {"success": True, "data": [UserActivityOut.model_validate(a).to_json() for a in history]}
    )


async def clear_activity(context: SecureRequestContext) -> JSONResponse:
    deleted = await get_store(context.request).clear_activity(context.user_id)
    logger.info("Cleared %d activities for %s", deleted, context.user_id)
    return JSONResponse({"success": True, "data": {"deletedCount": deleted}})


async def get_user_dashboard(context: SecureRequestContext) -> JSONResponse:
    data = await get_store(context.request).get_user_dashboard_data(
        context.user_id,
        recent_days_back=days_param(context.request, 2),
    )
    return JSONResponse({"success": True, "data": UserDashboardOut.model_validate(data).to_json()})


async def cleanup_activities(context: SecureRequestContext) -> JSONResponse:
    """
    Delete activity older than ``?days=`` (default 365).

    **Admin only** - requires the admin role.
    """
    days = int_param(context.request, "days", 365, minimum=1)
    deleted = await get_store(context.request).cleanup_activities(days_to_keep=days)
    logger.info("Activity cleanup by %s: %d entries older than %d days", context.user_id, deleted, days)
    return JSONResponse({"success": True, "data": {"deletedCount": deleted}})


def create_router(guard: SecurityGuard, profiles: SecurityProfileRegistry) -> APIRouter:
    router = APIRouter(prefix="/api", tags=["User Activity"])
    user = profiles.get_profile("user").to_config(auth=AuthRequirement.REQUIRED)
    admin = profiles.get_profile("admin").to_config(auth=AuthRequirement.REQUIRED, admin_only=True)

    router.add_api_route("/user/track-activity", guard.wrap(user, track_activity), methods=["POST"])
    router.add_api_route("/user/bookmarks", guard.wrap(user, get_bookmark_status), methods=["GET"])
    router.add_api_route("/user/bookmarks", guard.wrap(user, add_bookmark), methods=["POST"])
    router.add_api_route("/user/bookmarks", guard.wrap(user, remove_bookmark), methods=["DELETE"])
    router.add_api_route("/user/recently-viewed", guard.wrap(user, get_recently_viewed), methods=["GET"])
    router.add_api_route("/user/activity", guard.wrap(user, get_activity_history), methods=["GET"])
    router.add_api_route("/user/activity", guard.wrap(user, clear_activity), methods=["DELETE"])
    router.add_api_route("/user/dashboard", guard.wrap(user, get_user_dashboard), methods=["GET"])
    router.add_api_route(
        "/admin/activity",
        guard.wrap(admin, cleanup_activities),
        methods=["DELETE"],
        tags=["Admin"],
    )
    return router
