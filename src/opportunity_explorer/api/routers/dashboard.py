"""Dashboard Router - pipeline statistics."""

from fastapi import APIRouter
from starlette.responses import JSONResponse

from opportunity_explorer.api.middleware.security_guard import SecureRequestContext, SecurityGuard
from opportunity_explorer.api.params import get_store
from opportunity_explorer.api.schemas import DashboardStatsOut
from opportunity_explorer.domain.models import AuthRequirement
from opportunity_explorer.domain.policies import SecurityProfileRegistry


async def get_dashboard_stats(context: SecureRequestContext) -> JSONResponse:
    stats = await get_store(context.request).get_dashboard_stats()
    return JSONResponse({"success": True, "data": DashboardStatsOut.model_validate(stats).to_json()})


async def get_admin_stats(context: SecureRequestContext) -> JSONResponse:
    """
    Pipeline statistics plus the caller's identity.

    **Admin only** - requires the admin role.
    """
    stats = await get_store(context.request).get_dashboard_stats()
    return JSONResponse(
        {
            "success": True,
            "data": DashboardStatsOut.model_validate(stats).to_json(),
            "meta": {"requestedBy": context.user_id, "clientIp": context.client_ip},
        }
    )


def create_router(guard: SecurityGuard, profiles: SecurityProfileRegistry) -> APIRouter:
    router = APIRouter(prefix="/api", tags=["Dashboard"])
    user = profiles.get_profile("user")
    admin = profiles.get_profile("admin")

    router.add_api_route(
        "/dashboard/stats",
        guard.wrap(user.to_config(auth=AuthRequirement.REQUIRED), get_dashboard_stats),
        methods=["GET"],
    )
    router.add_api_route(
        "/admin/stats",
        guard.wrap(
            admin.to_config(auth=AuthRequirement.REQUIRED, admin_only=True),
            get_admin_stats,
        ),
        methods=["GET"],
        tags=["Admin"],
    )
    return router
