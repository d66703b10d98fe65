"""
Social graph domain — admin-facing routes.

Routes:
  POST /api/v1/admin/graph/users/{user_id}/recount   Recompute a user's graph counters
  DELETE /api/v1/admin/graph/users/{user_id}          Remove a user and all their edges

Requires: ADMIN or SUPER_ADMIN role.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import require_admin
from app.database import get_db
from app.social_graph import controller as ctrl
from app.social_graph.schemas import RecountResponse, UserRemovalResponse
from shared.models.user import CurrentUser

router = APIRouter(prefix="/admin/graph", tags=["admin-social-graph"])


@router.post(
    "/users/{user_id}/recount",
    response_model=RecountResponse,
    summary="[Admin] Reconcile a user's graph counters",
    description=(
        "Overwrites followers, following, blocked and close-friends counters with "
        "the live edge counts. `drifted` reports whether anything changed."
    ),
)
async def recount_user(
    user_id: int = Path(..., ge=1),
    admin: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
) -> RecountResponse:
    return await ctrl.admin_recount(session, user_id)


@router.delete(
    "/users/{user_id}",
    response_model=UserRemovalResponse,
    summary="[Admin] Remove a user from the graph",
    description=(
        "Deletes every follow, request, block and close-friend edge touching the "
        "user, decrementing the counters on the other end of each, then deletes "
        "the user row."
    ),
)
async def delete_user(
    user_id: int = Path(..., ge=1),
    admin: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
) -> UserRemovalResponse:
    return await ctrl.admin_delete_user(session, user_id)
