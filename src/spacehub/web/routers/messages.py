from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from spacehub.core.modules.message.models import Attachment, MessageType, MessageView
from spacehub.core.modules.message.service import DEFAULT_MESSAGE_LIMIT
from spacehub.core.pagination import CursorPage
from spacehub.web.deps import AppDep, AuthTokenDep
from spacehub.web.openapi import ErrorResponse

router = APIRouter(tags=["messages"])


class CreateMessageRequest(BaseModel):
    """Post a message; either content or attachments is required."""

    content: str | None = Field(None, max_length=4000)
    message_type: MessageType = "text"
    attachments: list[Attachment] | None = None
    parent_message_id: UUID | None = Field(None, description="Message being replied to")


@router.get(
    "/spaces/{space_id}/messages",
    summary="List messages",
    description="Get a page of messages, newest first. Pass `next_before`/`next_before_id` back as `before`/`before_id`.",
    operation_id="listMessages",
    responses={
        200: {"description": "Page of messages"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not a member of this space"},
    },
)
async def list_messages(
    space_id: UUID,
    app: AppDep,
    auth_token: AuthTokenDep,
    limit: Annotated[int, Query(ge=1, description="Page size, capped at 100")] = DEFAULT_MESSAGE_LIMIT,
    before: Annotated[datetime | None, Query(description="Only messages created before this time")] = None,
    before_id: Annotated[UUID | None, Query(description="Id of the last message seen; breaks timestamp ties")] = None,
) -> CursorPage[MessageView]:
    return await app.get_messages(auth_token, space_id, limit, before, before_id)


@router.post(
    "/spaces/{space_id}/messages",
    summary="Post message",
    description="Post a message to a space, optionally as a reply.",
    operation_id="createMessage",
    status_code=201,
    responses={
        201: {"description": "Message created"},
        400: {"model": ErrorResponse, "description": "Invalid message"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not a member of this space"},
    },
)
async def create_message(
    space_id: UUID, req: CreateMessageRequest, app: AppDep, auth_token: AuthTokenDep
) -> MessageView:
    return await app.create_message(
        auth_token, space_id, req.content, req.message_type, req.attachments, req.parent_message_id
    )
