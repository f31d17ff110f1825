from typing import Any
from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel, Field

from spacehub.core.modules.user.models import AvatarType, UserView
from spacehub.web.deps import AppDep, AuthTokenDep
from spacehub.web.openapi import ErrorResponse

router = APIRouter(tags=["users"])


class UpdateUserRequest(BaseModel):
    """Partial profile update; omitted fields stay unchanged."""

    display_name: str | None = Field(None, min_length=1, max_length=64)
    username: str | None = Field(None, min_length=2, max_length=32)
    avatar_type: AvatarType | None = None
    avatar_data: dict[str, Any] | None = None


@router.get(
    "/users/{user_id}",
    summary="Get user",
    description="Get a user's profile.",
    operation_id="getUser",
    responses={
        200: {"description": "User profile"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
)
async def get_user(user_id: UUID, app: AppDep, auth_token: AuthTokenDep) -> UserView:
    return await app.get_user(auth_token, user_id)


@router.patch(
    "/users/{user_id}",
    summary="Update user",
    description="Update your own profile.",
    operation_id="updateUser",
    responses={
        200: {"description": "User updated"},
        400: {"model": ErrorResponse, "description": "Invalid profile data"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not your profile"},
        409: {"model": ErrorResponse, "description": "Username taken"},
    },
)
async def update_user(user_id: UUID, req: UpdateUserRequest, app: AppDep, auth_token: AuthTokenDep) -> UserView:
    return await app.update_user(auth_token, user_id, req.model_dump(exclude_unset=True))
