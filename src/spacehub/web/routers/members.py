from uuid import UUID

from fastapi import APIRouter

from spacehub.core.modules.space.models import MemberRole, MemberView
from spacehub.web.deps import AppDep, AuthTokenDep
from spacehub.web.openapi import ErrorResponse

router = APIRouter(tags=["members"])


@router.get(
    "/spaces/{space_id}/members",
    summary="List space members",
    description="Get all members of a space with their roles and public profiles.",
    operation_id="listSpaceMembers",
    responses={
        200: {"description": "List of members"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not a member of this space"},
    },
)
async def list_members(space_id: UUID, app: AppDep, auth_token: AuthTokenDep) -> list[MemberView]:
    return await app.get_members(auth_token, space_id)


@router.get(
    "/spaces/{space_id}/members/{user_id}/role",
    summary="Get member role",
    description="Get a member's role and notification level in a space.",
    operation_id="getMemberRole",
    responses={
        200: {"description": "Member role"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not a member of this space"},
        404: {"model": ErrorResponse, "description": "User is not a member of this space"},
    },
)
async def get_member_role(space_id: UUID, user_id: UUID, app: AppDep, auth_token: AuthTokenDep) -> MemberRole:
    return await app.get_member_role(auth_token, space_id, user_id)
