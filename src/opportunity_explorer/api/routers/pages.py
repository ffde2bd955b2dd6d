"""
Pages Router - entry points for browsers.

Access control for these routes is done by SignInRedirectMiddleware.
"""

from fastapi import APIRouter, Request

from opportunity_explorer.api.schemas import DashboardStatsOut
from opportunity_explorer.domain.exceptions import InvalidSessionError


router = APIRouter(tags=["Pages"])


@router.get("/")
async def landing():
    return {
        "name": "Opportunity Explorer",
        "description": "Business opportunities mined from Reddit discussions",
    }


@router.get("/clock-error")
async def clock_error(request: Request):
    return {
        "error": "CLOCK_SKEW",
        "message": (
            "Your session could not be verified. Check that your system clock "
            "is correct, then sign in again."
        ),
        "from": request.query_params.get("from"),
    }


@router.get("/dashboard")
async def dashboard(request: Request):
    """Dashboard summary for the signed-in user."""
    try:
        session = await request.app.state.identity_provider.authenticate(request)
        user_id = session.user_id
    except InvalidSessionError:
        # Only reachable through the development auth bypass
        user_id = None
    stats = await request.app.state.opportunity_store.get_dashboard_stats()
    return {
        "user": user_id,
        "stats": DashboardStatsOut.model_validate(stats).to_json(),
    }
