from typing import Optional

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.requests import Request
from starlette.responses import Response

from opportunity_explorer.adapters.identity.header_adapter import HeaderIdentityProvider
from opportunity_explorer.adapters.rate_limiting.memory_adapter import InMemoryRateLimitStore
from opportunity_explorer.api.middleware.identity import IdentityAdapter
from opportunity_explorer.api.middleware.security_guard import SecurityGuard
from opportunity_explorer.domain.exceptions import InvalidSessionError
from opportunity_explorer.domain.models import IdentitySession
from opportunity_explorer.interfaces.identity import IdentityProviderPort


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FailingIdentityProvider(IdentityProviderPort):
    """Identity provider whose session lookup always fails."""

    def __init__(self, message: str = "Session expired", code: Optional[str] = None):
        self.message = message
        self.code = code

    async def authenticate(self, request: Request) -> IdentitySession:
        raise InvalidSessionError(self.message, code=self.code)

    async def refresh_session(self, session: IdentitySession) -> IdentitySession:
        raise InvalidSessionError(self.message, code=self.code)

    def redirect_to_sign_in(self, request: Request) -> Response:
        return HeaderIdentityProvider().redirect_to_sign_in(request)


def user_headers(user_id: str = "user_123", roles: str = "", permissions: str = "", **extra) -> dict:
    headers = {"X-User-ID": user_id}
    if roles:
        headers["X-User-Roles"] = roles
    if permissions:
        headers["X-User-Permissions"] = permissions
    headers.update(extra)
    return headers


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ip_store(clock):
    return InMemoryRateLimitStore(name="ip", clock=clock)


@pytest.fixture
def user_store(clock):
    return InMemoryRateLimitStore(name="user", clock=clock)


@pytest.fixture
def guard(ip_store, user_store):
    return SecurityGuard(
        identity=IdentityAdapter(HeaderIdentityProvider()),
        ip_store=ip_store,
        user_store=user_store,
    )


@pytest.fixture
def guarded_client(guard):
    """Build a TestClient serving one handler at /op behind the guard."""

    def build(config, handler, base_url: str = "http://testserver", methods=("GET",)):
        app = FastAPI()
        app.add_api_route("/op", guard.wrap(config, handler), methods=list(methods))
        return TestClient(app, base_url=base_url)

    return build
