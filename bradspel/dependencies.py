"""
Bradspel Backend — Request Dependencies
========================================

What:  FastAPI dependencies that turn the Authorization header into an
       Identity and enforce role gates.
How:   HTTPBearer(auto_error=False) so a missing header reaches our own
       AuthError handler (401 with the standard error body) instead of
       FastAPI's 403.

Usage:
    @router.post("/lend/{game_id}")
    async def lend(..., identity: Identity = Depends(require_staff)):
        ...
"""

from typing import Callable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from bradspel.exceptions import AuthError
from bradspel.models import ROLE_ADMIN, ROLE_STAFF
from bradspel.services.auth_service import Identity, auth_service

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    if credentials is None or not credentials.credentials:
        raise AuthError(message="Authentication required")
    return auth_service.authenticate(credentials.credentials)


def require_roles(*roles: str) -> Callable:
    """Dependency factory: any authenticated identity whose role is in `roles`."""
    allowed = set(roles)

    async def dependency(identity: Identity = Depends(get_current_identity)) -> Identity:
        if identity.role not in allowed:
            raise AuthError(
                message="You do not have permission to perform this action",
                status_code=403,
                context={"required_roles": sorted(allowed)},
            )
        return identity

    return dependency


require_staff = require_roles(ROLE_STAFF, ROLE_ADMIN)
