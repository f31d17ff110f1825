from uuid import UUID

from fastapi import APIRouter, Response
from pydantic import BaseModel, Field

from spacehub.core.modules.space.models import Space, SpaceWithMembership, Wallpaper
from spacehub.web.deps import AppDep, AuthTokenDep
from spacehub.web.openapi import ErrorResponse

router = APIRouter(tags=["spaces"])


class CreateSpaceRequest(BaseModel):
    """Request to create a new space."""

    name: str = Field(..., min_length=1, max_length=100, description="Space name")
    description: str | None = Field(None, description="Space description")
    emoji: str = Field("🚀", min_length=1, description="Space icon")
    wallpaper: Wallpaper = "neutral"
    wallpaper_url: str | None = Field(None, description="Image URL for the custom wallpaper")

    model_config = {"json_schema_extra": {"examples": [{"name": "Book Club", "description": "Monthly reads", "emoji": "📚"}]}}


class UpdateSpaceRequest(BaseModel):
    """Partial space update; omitted fields stay unchanged."""

    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None
    emoji: str | None = Field(None, min_length=1)
    wallpaper: Wallpaper | None = None
    wallpaper_url: str | None = None


class JoinSpaceResponse(BaseModel):
    message: str
    space: Space


@router.get(
    "/spaces",
    summary="List user spaces",
    description="Get all spaces where the authenticated user is a member, with the user's role in each.",
    operation_id="listSpaces",
    responses={
        200: {"description": "List of spaces"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def list_spaces(app: AppDep, auth_token: AuthTokenDep) -> list[SpaceWithMembership]:
    return await app.get_spaces(auth_token)


@router.post(
    "/spaces",
    summary="Create new space",
    description="Create a new space. The authenticated user becomes its admin.",
    operation_id="createSpace",
    status_code=201,
    responses={
        201: {"description": "Space created successfully"},
        400: {"model": ErrorResponse, "description": "Invalid request data"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def create_space(req: CreateSpaceRequest, app: AppDep, auth_token: AuthTokenDep) -> Space:
    return await app.create_space(auth_token, req.model_dump())


@router.get(
    "/spaces/{space_id}",
    summary="Get space",
    description="Get a space with the caller's membership details.",
    operation_id="getSpace",
    responses={
        200: {"description": "Space details"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not a member of this space"},
        404: {"model": ErrorResponse, "description": "Space not found"},
    },
)
async def get_space(space_id: UUID, app: AppDep, auth_token: AuthTokenDep) -> SpaceWithMembership:
    return await app.get_space(auth_token, space_id)


@router.patch(
    "/spaces/{space_id}",
    summary="Update space",
    description="Update space settings. Admins only.",
    operation_id="updateSpace",
    responses={
        200: {"description": "Space updated"},
        400: {"model": ErrorResponse, "description": "Invalid request data"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Admin access required"},
    },
)
async def update_space(space_id: UUID, req: UpdateSpaceRequest, app: AppDep, auth_token: AuthTokenDep) -> Space:
    return await app.update_space(auth_token, space_id, req.model_dump(exclude_unset=True))


@router.delete(
    "/spaces/{space_id}",
    summary="Delete space",
    description="Delete a space with its members, messages, notes and lessons. Admins only.",
    operation_id="deleteSpace",
    responses={
        200: {"description": "Space deleted"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Admin access required"},
    },
)
async def delete_space(space_id: UUID, app: AppDep, auth_token: AuthTokenDep) -> dict[str, str]:
    await app.delete_space(auth_token, space_id)
    return {"message": "Space deleted successfully"}


@router.post(
    "/spaces/{invite_code}/join",
    summary="Join space",
    description="Join a space by invite code. Joining a space you already belong to returns 200.",
    operation_id="joinSpace",
    status_code=201,
    responses={
        200: {"description": "Already a member"},
        201: {"description": "Joined"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Invalid invite code"},
    },
)
async def join_space(invite_code: str, app: AppDep, auth_token: AuthTokenDep, response: Response) -> JoinSpaceResponse:
    result = await app.join_space(auth_token, invite_code)
    if not result.created:
        response.status_code = 200
        return JoinSpaceResponse(message="Already a member of this space", space=result.space)
    return JoinSpaceResponse(message="Successfully joined space", space=result.space)
