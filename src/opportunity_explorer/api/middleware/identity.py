"""
Identity adapter.

Resolves the Principal of a request through the identity provider and
answers the guard's admin, role and permission questions.
"""

import logging
from typing import Iterable, Optional

from starlette.requests import Request

from opportunity_explorer.domain.exceptions import InvalidSessionError
from opportunity_explorer.domain.models import ADMIN_ROLE, Principal
from opportunity_explorer.interfaces.identity import IdentityProviderPort

logger = logging.getLogger(__name__)


class IdentityAdapter:
    """Principal extraction and authorization predicates."""

    def __init__(self, provider: IdentityProviderPort):
        self.provider = provider

    async def current_principal(self, request: Request) -> Optional[Principal]:
        """
        Get the signed-in principal, or None for anonymous requests.

        An invalid or expired session is treated as anonymous so that
        operations requiring authentication answer with AUTH_REQUIRED.
        """
        try:
            session = await self.provider.authenticate(request)
        except InvalidSessionError as e:
            logger.warning(
                "Rejected session on %s: %s (code=%s)",
                request.url.path, e.message, e.code,
            )
            return None
        return Principal.from_session(session)

    def is_admin(self, principal: Optional[Principal]) -> bool:
        return principal is not None and ADMIN_ROLE in principal.roles

    def has_any_role(self, principal: Optional[Principal], roles: Iterable[str]) -> bool:
        """True if the principal holds at least one of the roles."""
        if principal is None:
            return False
        return any(role in principal.roles for role in roles)

    def has_all_permissions(
        self,
        principal: Optional[Principal],
        permissions: Iterable[str],
    ) -> bool:
        """True if the principal holds every one of the permissions."""
        if principal is None:
            return False
        return all(permission in principal.permissions for permission in permissions)
