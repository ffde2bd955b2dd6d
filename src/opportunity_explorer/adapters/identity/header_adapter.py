"""
Header Identity Adapter.

Implements the IdentityProviderPort by reading the session from HTTP
headers. Meant for local development and testing; production deployments
put the real identity service behind the same port.
"""

from typing import Optional
from urllib.parse import urlencode
from uuid import uuid4

from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from opportunity_explorer.domain.models import IdentitySession, PublicMetadata
from opportunity_explorer.interfaces.identity import IdentityProviderPort


def _split_header(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class HeaderIdentityProvider(IdentityProviderPort):
    """
    Mock identity provider that trusts request headers.

    Headers:
        X-User-ID: User identifier (absent means anonymous)
        X-Session-ID: Session identifier
        X-User-Roles: Comma-separated roles (e.g. ``admin,editor``)
        X-User-Permissions: Comma-separated permissions (e.g. ``read,write``)
    """

    def __init__(self, sign_in_url: str = "/sign-in"):
        self.sign_in_url = sign_in_url

    async def authenticate(self, request: Request) -> IdentitySession:
        user_id = (request.headers.get("X-User-ID") or "").strip()
        if not user_id:
            return IdentitySession(is_authenticated=False)

        return IdentitySession(
            is_authenticated=True,
            user_id=user_id,
            session_id=request.headers.get("X-Session-ID") or f"sess_{user_id}",
            public_metadata=PublicMetadata(
                roles=_split_header(request.headers.get("X-User-Roles")),
                permissions=_split_header(request.headers.get("X-User-Permissions")),
            ),
        )

    async def refresh_session(self, session: IdentitySession) -> IdentitySession:
        return session.model_copy(update={"session_id": f"sess_{uuid4().hex}"})

    def redirect_to_sign_in(self, request: Request) -> Response:
        query = urlencode({"redirect_url": str(request.url)})
        return RedirectResponse(url=f"{self.sign_in_url}?{query}", status_code=307)
