from typing import Any
from uuid import UUID

from fastapi import APIRouter, Response
from pydantic import BaseModel, Field

from spacehub.core.modules.lesson.models import LessonProgress, LessonView
from spacehub.core.modules.note.models import PublishStatus
from spacehub.web.deps import AppDep, AuthTokenDep
from spacehub.web.openapi import ErrorResponse

router = APIRouter(tags=["lessons"])


class CreateLessonRequest(BaseModel):
    """Request to create a lesson."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    topics: list[dict[str, Any]] = Field(default_factory=list, description="Ordered topics")
    status: PublishStatus = "draft"


class UpdateLessonRequest(BaseModel):
    """Partial lesson update; publishing stamps published_at the first time."""

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    topics: list[dict[str, Any]] | None = None
    status: PublishStatus | None = None


class ProgressRequest(BaseModel):
    completed_topics: list[int] = Field(..., description="Indexes of completed topics")


@router.get(
    "/spaces/{space_id}/lessons",
    summary="List lessons",
    description="Get all lessons in a space, most recently updated first.",
    operation_id="listLessons",
    responses={
        200: {"description": "List of lessons"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not a member of this space"},
    },
)
async def list_lessons(space_id: UUID, app: AppDep, auth_token: AuthTokenDep) -> list[LessonView]:
    return await app.get_lessons(auth_token, space_id)


@router.post(
    "/spaces/{space_id}/lessons",
    summary="Create lesson",
    description="Create a lesson in a space. The caller becomes its author.",
    operation_id="createLesson",
    status_code=201,
    responses={
        201: {"description": "Lesson created"},
        400: {"model": ErrorResponse, "description": "Invalid request data"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not a member of this space"},
    },
)
async def create_lesson(space_id: UUID, req: CreateLessonRequest, app: AppDep, auth_token: AuthTokenDep) -> LessonView:
    return await app.create_lesson(auth_token, space_id, req.title, req.topics, req.description, req.status)


@router.get(
    "/lessons/{lesson_id}",
    summary="Get lesson",
    description="Get a lesson with its author.",
    operation_id="getLesson",
    responses={
        200: {"description": "Lesson details"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not a member of this space"},
        404: {"model": ErrorResponse, "description": "Lesson not found"},
    },
)
async def get_lesson(lesson_id: UUID, app: AppDep, auth_token: AuthTokenDep) -> LessonView:
    return await app.get_lesson(auth_token, lesson_id)


@router.patch(
    "/lessons/{lesson_id}",
    summary="Update lesson",
    description="Update a lesson. Only its author can edit it.",
    operation_id="updateLesson",
    responses={
        200: {"description": "Lesson updated"},
        400: {"model": ErrorResponse, "description": "Invalid request data"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not a member or not the author"},
        404: {"model": ErrorResponse, "description": "Lesson not found"},
    },
)
async def update_lesson(lesson_id: UUID, req: UpdateLessonRequest, app: AppDep, auth_token: AuthTokenDep) -> LessonView:
    changes = req.model_dump(exclude_unset=True)
    changes = {k: v for k, v in changes.items() if v is not None or k == "description"}
    return await app.update_lesson(auth_token, lesson_id, changes)


@router.delete(
    "/lessons/{lesson_id}",
    summary="Delete lesson",
    description="Delete a lesson and everyone's progress in it. Only its author can delete it.",
    operation_id="deleteLesson",
    responses={
        200: {"description": "Lesson deleted"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not a member or not the author"},
        404: {"model": ErrorResponse, "description": "Lesson not found"},
    },
)
async def delete_lesson(lesson_id: UUID, app: AppDep, auth_token: AuthTokenDep) -> dict[str, str]:
    await app.delete_lesson(auth_token, lesson_id)
    return {"message": "Lesson deleted successfully"}


@router.get(
    "/lessons/{lesson_id}/progress",
    summary="Get lesson progress",
    description="Get the caller's progress through a lesson. Untouched lessons report zero progress.",
    operation_id="getLessonProgress",
    responses={
        200: {"description": "Progress"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not a member of this space"},
        404: {"model": ErrorResponse, "description": "Lesson not found"},
    },
)
async def get_lesson_progress(lesson_id: UUID, app: AppDep, auth_token: AuthTokenDep) -> LessonProgress:
    return await app.get_lesson_progress(auth_token, lesson_id)


@router.post(
    "/lessons/{lesson_id}/progress",
    summary="Save lesson progress",
    description="Record completed topics. Returns 201 the first time and 200 on later updates.",
    operation_id="saveLessonProgress",
    status_code=201,
    responses={
        200: {"description": "Progress updated"},
        201: {"description": "Progress created"},
        400: {"model": ErrorResponse, "description": "Topic index out of range"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not a member of this space"},
        404: {"model": ErrorResponse, "description": "Lesson not found"},
    },
)
async def save_lesson_progress(
    lesson_id: UUID, req: ProgressRequest, app: AppDep, auth_token: AuthTokenDep, response: Response
) -> LessonProgress:
    result = await app.save_lesson_progress(auth_token, lesson_id, req.completed_topics)
    if not result.created:
        response.status_code = 200
    return result.progress
