"""
Graph service — auth FastAPI dependencies.

Tokens are issued by the identity service; this service only verifies them.
These wrap the shared auth dependencies and add the admin role guard.
"""
from __future__ import annotations

from fastapi import Depends, HTTPException, status

from shared.auth.dependencies import get_current_user_required
from shared.models.user import CurrentUser

# Routes import the auth dependency from here, not from shared directly.
get_current_user = get_current_user_required


def require_admin(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """Raise 403 unless the authenticated user holds the ADMIN or SUPER_ADMIN role."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator access required.",
        )
    return current_user
