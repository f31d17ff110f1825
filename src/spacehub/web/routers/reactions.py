from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel, Field

from spacehub.core.modules.message.models import ReactionView
from spacehub.web.deps import AppDep, AuthTokenDep
from spacehub.web.openapi import ErrorResponse

router = APIRouter(tags=["reactions"])


class ReactionRequest(BaseModel):
    emoji: str = Field(..., min_length=1, max_length=16, description="Emoji reaction, e.g. 👍")


@router.get(
    "/messages/{message_id}/reactions",
    summary="List reactions",
    description="Get all reactions on a message.",
    operation_id="listReactions",
    responses={
        200: {"description": "List of reactions"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not a member of this space"},
        404: {"model": ErrorResponse, "description": "Message not found"},
    },
)
async def list_reactions(message_id: UUID, app: AppDep, auth_token: AuthTokenDep) -> list[ReactionView]:
    return await app.get_reactions(auth_token, message_id)


@router.post(
    "/messages/{message_id}/reactions",
    summary="Add reaction",
    description="React to a message. Each user can use each emoji once per message.",
    operation_id="addReaction",
    status_code=201,
    responses={
        201: {"description": "Reaction added"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not a member of this space"},
        404: {"model": ErrorResponse, "description": "Message not found"},
        409: {"model": ErrorResponse, "description": "Reaction already exists"},
    },
)
async def add_reaction(
    message_id: UUID, req: ReactionRequest, app: AppDep, auth_token: AuthTokenDep
) -> ReactionView:
    return await app.add_reaction(auth_token, message_id, req.emoji)


@router.delete(
    "/messages/{message_id}/reactions",
    summary="Remove reaction",
    description="Remove your reaction with the given emoji. Removing a missing reaction succeeds.",
    operation_id="removeReaction",
    responses={
        200: {"description": "Reaction removed"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not a member of this space"},
        404: {"model": ErrorResponse, "description": "Message not found"},
    },
)
async def remove_reaction(
    message_id: UUID, req: ReactionRequest, app: AppDep, auth_token: AuthTokenDep
) -> dict[str, object]:
    await app.remove_reaction(auth_token, message_id, req.emoji)
    return {"success": True, "message": "Reaction removed successfully"}
