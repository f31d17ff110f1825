from typing import Any
from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel, Field

from spacehub.core.modules.note.models import NoteView, PublishStatus
from spacehub.web.deps import AppDep, AuthTokenDep
from spacehub.web.openapi import ErrorResponse

router = APIRouter(tags=["notes"])


class CreateNoteRequest(BaseModel):
    """Request to create a note."""

    title: str = Field(..., min_length=1, max_length=200)
    blocks: list[dict[str, Any]] = Field(default_factory=list, description="Editor blocks")
    status: PublishStatus = "draft"


class UpdateNoteRequest(BaseModel):
    """Partial note update; publishing stamps published_at the first time."""

    title: str | None = Field(None, min_length=1, max_length=200)
    blocks: list[dict[str, Any]] | None = None
    status: PublishStatus | None = None


def note_changes(req: UpdateNoteRequest) -> dict[str, Any]:
    return {k: v for k, v in req.model_dump(exclude_unset=True).items() if v is not None}


@router.get(
    "/spaces/{space_id}/notes",
    summary="List notes",
    description="Get all notes in a space, most recently updated first.",
    operation_id="listNotes",
    responses={
        200: {"description": "List of notes"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not a member of this space"},
    },
)
async def list_notes(space_id: UUID, app: AppDep, auth_token: AuthTokenDep) -> list[NoteView]:
    return await app.get_notes(auth_token, space_id)


@router.post(
    "/spaces/{space_id}/notes",
    summary="Create note",
    description="Create a note in a space. The caller becomes its author.",
    operation_id="createNote",
    status_code=201,
    responses={
        201: {"description": "Note created"},
        400: {"model": ErrorResponse, "description": "Invalid request data"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not a member of this space"},
    },
)
async def create_note(space_id: UUID, req: CreateNoteRequest, app: AppDep, auth_token: AuthTokenDep) -> NoteView:
    return await app.create_note(auth_token, space_id, req.title, req.blocks, req.status)


@router.get(
    "/notes/{note_id}",
    summary="Get note",
    description="Get a note with its author.",
    operation_id="getNote",
    responses={
        200: {"description": "Note details"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not a member of this space"},
        404: {"model": ErrorResponse, "description": "Note not found"},
    },
)
async def get_note(note_id: UUID, app: AppDep, auth_token: AuthTokenDep) -> NoteView:
    return await app.get_note(auth_token, note_id)


@router.patch(
    "/notes/{note_id}",
    summary="Update note",
    description="Update a note. Only its author can edit it.",
    operation_id="updateNote",
    responses={
        200: {"description": "Note updated"},
        400: {"model": ErrorResponse, "description": "Invalid request data"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not a member or not the author"},
        404: {"model": ErrorResponse, "description": "Note not found"},
    },
)
async def update_note(note_id: UUID, req: UpdateNoteRequest, app: AppDep, auth_token: AuthTokenDep) -> NoteView:
    return await app.update_note(auth_token, note_id, note_changes(req))


@router.delete(
    "/notes/{note_id}",
    summary="Delete note",
    description="Delete a note. Only its author can delete it.",
    operation_id="deleteNote",
    responses={
        200: {"description": "Note deleted"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not a member or not the author"},
        404: {"model": ErrorResponse, "description": "Note not found"},
    },
)
async def delete_note(note_id: UUID, app: AppDep, auth_token: AuthTokenDep) -> dict[str, str]:
    await app.delete_note(auth_token, note_id)
    return {"message": "Note deleted successfully"}
