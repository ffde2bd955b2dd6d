"""Identity Provider Port (Interface)."""

from abc import ABC, abstractmethod

from starlette.requests import Request
from starlette.responses import Response

from opportunity_explorer.domain.models import IdentitySession


class IdentityProviderPort(ABC):
    """Port (interface) for the external identity service."""

    @abstractmethod
    async def authenticate(self, request: Request) -> IdentitySession:
        """
        Look up the session attached to the request.

        Returns an unauthenticated session for anonymous requests.

        Raises:
            InvalidSessionError: If the session is invalid or expired
        """
        pass

    @abstractmethod
    async def refresh_session(self, session: IdentitySession) -> IdentitySession:
        """Issue a fresh session for an authenticated user."""
        pass

    @abstractmethod
    def redirect_to_sign_in(self, request: Request) -> Response:
        """Build the response that sends a browser to the sign-in page."""
        pass
