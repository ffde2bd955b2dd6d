"""
Opportunity Explorer - FastAPI Application Entry Point.

Business opportunities mined from Reddit, served through guarded JSON endpoints.
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI

from opportunity_explorer.adapters.identity.header_adapter import HeaderIdentityProvider
from opportunity_explorer.adapters.persistence.memory_store import InMemoryOpportunityStore
from opportunity_explorer.adapters.persistence.postgres_opportunity_adapter import PostgresOpportunityStore
from opportunity_explorer.adapters.rate_limiting.memory_adapter import InMemoryRateLimitStore
from opportunity_explorer.adapters.rate_limiting.redis_adapter import RedisRateLimitStore
from opportunity_explorer.api.middleware.identity import IdentityAdapter
from opportunity_explorer.api.middleware.security_guard import SecurityGuard
from opportunity_explorer.api.middleware.sign_in import SignInRedirectMiddleware
from opportunity_explorer.api.routers import activity, communities, dashboard, ideas, pages, saved, session
from opportunity_explorer.domain.models import Environment
from opportunity_explorer.domain.policies import SecurityProfileRegistry
from opportunity_explorer.domain.token_refresh import TokenRefreshThrottle
from opportunity_explorer.interfaces.identity import IdentityProviderPort
from opportunity_explorer.interfaces.opportunity_store import OpportunityStorePort
from opportunity_explorer.interfaces.rate_limiter import RateLimitStorePort


# ===========================================
# LOGGING CONFIGURATION
# ===========================================
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# ===========================================
# CONFIGURATION (from environment variables)
# ===========================================
DEFAULT_PROFILES_PATH = Path(__file__).resolve().parent.parent / "config" / "security.yaml"

APP_ENV = os.getenv("APP_ENV", Environment.DEVELOPMENT.value)
DATABASE_URL = os.getenv("DATABASE_URL")
REDIS_URL = os.getenv("REDIS_URL")
SECURITY_PROFILES_PATH = os.getenv("SECURITY_PROFILES_PATH", str(DEFAULT_PROFILES_PATH))
SIGN_IN_URL = os.getenv("SIGN_IN_URL", "/sign-in")
DEBUG = os.getenv("DEBUG", "false").lower() in ("true", "1", "yes")


def build_rate_limit_stores() -> tuple[RateLimitStorePort, RateLimitStorePort]:
    """IP and user stores, shared through Redis when REDIS_URL is set."""
    if REDIS_URL:
        return (
            RedisRateLimitStore(redis_url=REDIS_URL, key_prefix="ratelimit:ip:"),
            RedisRateLimitStore(redis_url=REDIS_URL, key_prefix="ratelimit:user:"),
        )
    return InMemoryRateLimitStore(name="ip"), InMemoryRateLimitStore(name="user")


def build_opportunity_store() -> OpportunityStorePort:
    if DATABASE_URL:
        return PostgresOpportunityStore(database_url=DATABASE_URL, debug=DEBUG)
    logger.warning("DATABASE_URL not set, serving in-memory sample data")
    return InMemoryOpportunityStore.with_sample_data()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    yield

    # Shutdown - cleanup connections
    for resource in (
        app.state.guard.ip_store,
        app.state.guard.user_store,
        app.state.opportunity_store,
    ):
        if hasattr(resource, "close"):
            await resource.close()


def create_app(
    environment: Optional[Environment] = None,
    profiles: Optional[SecurityProfileRegistry] = None,
    identity_provider: Optional[IdentityProviderPort] = None,
    opportunity_store: Optional[OpportunityStorePort] = None,
    ip_store: Optional[RateLimitStorePort] = None,
    user_store: Optional[RateLimitStorePort] = None,
    token_refresh_throttle: Optional[TokenRefreshThrottle] = None,
) -> FastAPI:
    """
    Application factory for creating the FastAPI app.

    Collaborators default to the environment configuration; tests pass
    their own.
    """
    environment = environment or Environment(APP_ENV)
    profiles = profiles or SecurityProfileRegistry(SECURITY_PROFILES_PATH, environment)
    identity_provider = identity_provider or HeaderIdentityProvider(sign_in_url=SIGN_IN_URL)

    if ip_store is None or user_store is None:
        default_ip_store, default_user_store = build_rate_limit_stores()
        if ip_store is None:
            ip_store = default_ip_store
        if user_store is None:
            user_store = default_user_store

    guard = SecurityGuard(
        identity=IdentityAdapter(identity_provider),
        ip_store=ip_store,
        user_store=user_store,
    )

    app = FastAPI(
        title="Opportunity Explorer",
        description=(
            "Business opportunities derived from Reddit discussions.\n\n"
            "## Security\n"
            "Every `/api` endpoint runs behind the security guard: HTTPS, CORS, "
            "IP and user rate limits, authentication and role checks. Failures "
            "return `{\"error\": CODE, \"message\": text}`.\n\n"
            "## Authentication (Mock)\n"
            "Use these headers to simulate different users:\n"
            "- `X-User-ID`: User identifier (e.g., `user_123`)\n"
            "- `X-User-Roles`: Comma-separated roles (e.g., `admin`)\n"
            "- `X-User-Permissions`: Comma-separated permissions"
        ),
        version="0.1.0",
        lifespan=lifespan,
        debug=DEBUG,
    )

    app.state.guard = guard
    app.state.identity_provider = identity_provider
    if opportunity_store is None:
        opportunity_store = build_opportunity_store()
    if token_refresh_throttle is None:
        token_refresh_throttle = TokenRefreshThrottle()

    app.state.opportunity_store = opportunity_store
    app.state.token_refresh_throttle = token_refresh_throttle

    app.add_middleware(
        SignInRedirectMiddleware,
        provider=identity_provider,
        environment=environment,
    )

    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check():
        return {"status": "healthy", "environment": environment.value}

    # Include routers
    app.include_router(pages.router)
    app.include_router(communities.create_router(guard, profiles))
    app.include_router(ideas.create_router(guard, profiles))
    app.include_router(saved.create_router(guard, profiles))
    app.include_router(activity.create_router(guard, profiles))
    app.include_router(dashboard.create_router(guard, profiles))
    app.include_router(session.create_router(guard, profiles))

    logger.info(
        "Opportunity Explorer configured: environment=%s profiles=%s",
        environment.value, ", ".join(sorted(profiles.get_all_profiles())),
    )
    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "opportunity_explorer.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        proxy_headers=True,
    )
