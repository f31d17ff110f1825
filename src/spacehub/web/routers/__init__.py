from spacehub.web.routers.auth import router as auth_router
from spacehub.web.routers.lessons import router as lessons_router
from spacehub.web.routers.members import router as members_router
from spacehub.web.routers.messages import router as messages_router
from spacehub.web.routers.notes import router as notes_router
from spacehub.web.routers.reactions import router as reactions_router
from spacehub.web.routers.spaces import router as spaces_router
from spacehub.web.routers.users import router as users_router

__all__ = [
    "auth_router",
    "lessons_router",
    "members_router",
    "messages_router",
    "notes_router",
    "reactions_router",
    "spaces_router",
    "users_router",
]
