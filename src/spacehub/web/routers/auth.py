from typing import Any

from fastapi import APIRouter, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from spacehub.core.modules.user.models import AvatarType, UserView
from spacehub.web.deps import AUTH_COOKIE_NAME, AppDep, AuthTokenDep
from spacehub.web.openapi import ErrorResponse

router = APIRouter(tags=["auth"])


class SendOtpRequest(BaseModel):
    """Request a one-time sign-in code."""

    contact: str = Field(..., min_length=1, description="Email address or phone number with country code")

    model_config = {"json_schema_extra": {"examples": [{"contact": "demo-admin@example.com"}]}}


class SendOtpResponse(BaseModel):
    success: bool
    message: str
    debug_otp: str | None = Field(
        None, serialization_alias="debugOTP", description="The issued code; only present in debug configurations"
    )


class VerifyOtpRequest(BaseModel):
    """Exchange a one-time code for a session."""

    contact: str = Field(..., min_length=1, description="Email address or phone number the code was sent to")
    otp: str = Field(..., description="Six-digit code")


class VerifyOtpResponse(BaseModel):
    success: bool
    message: str
    user: UserView
    contact: str
    is_new_user: bool = Field(..., serialization_alias="isNewUser")
    requires_profile_completion: bool = Field(..., serialization_alias="requiresProfileCompletion")
    token: str = Field(..., description="Session token for the Authorization header")


class OtpFailure(BaseModel):
    success: bool = False
    message: str


class CompleteProfileRequest(BaseModel):
    """Replace the provisional profile created on first sign-in."""

    model_config = ConfigDict(populate_by_name=True)

    display_name: str = Field(..., alias="displayName", min_length=1, max_length=64)
    username: str = Field(..., min_length=2, max_length=32)
    avatar_type: AvatarType = Field("emoji", alias="avatarType")
    avatar_data: dict[str, Any] | None = Field(None, alias="avatarData")


class CompleteProfileResponse(BaseModel):
    success: bool = True
    user: UserView


def otp_failure(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content=OtpFailure(message=message).model_dump())


@router.post(
    "/auth/send-otp",
    summary="Send sign-in code",
    description="Issue a one-time code to an email address or phone number. Demo accounts accept any 6-digit code.",
    operation_id="sendOtp",
    response_model=SendOtpResponse,
    response_model_exclude_none=True,
    responses={
        200: {"description": "Code issued"},
        400: {"model": OtpFailure, "description": "Invalid contact or delivery failure"},
    },
)
async def send_otp(req: SendOtpRequest, app: AppDep) -> SendOtpResponse | JSONResponse:
    result = await app.send_otp(req.contact)
    if not result.success:
        return otp_failure(result.message)
    return SendOtpResponse(success=True, message=result.message, debug_otp=result.debug_otp)


@router.post(
    "/auth/verify-otp",
    summary="Verify sign-in code",
    description="Verify a one-time code and start a session. The token is returned and also set as a cookie.",
    operation_id="verifyOtp",
    response_model=VerifyOtpResponse,
    responses={
        200: {"description": "Signed in"},
        400: {"model": OtpFailure, "description": "Missing, invalid, expired or exhausted code"},
    },
)
async def verify_otp(req: VerifyOtpRequest, app: AppDep, response: Response) -> VerifyOtpResponse | JSONResponse:
    result = await app.verify_otp(req.contact, req.otp)
    if not result.success or result.user is None or result.token is None:
        return otp_failure(result.message)

    # Set cookie for browser-based clients
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=result.token,
        httponly=True,
        samesite="lax",
        secure=app.config.environment == "production",
        max_age=app.config.session_max_age_days * 24 * 60 * 60,
    )
    return VerifyOtpResponse(
        success=True,
        message=result.message,
        user=UserView.from_domain(result.user),
        contact=req.contact,
        is_new_user=result.is_new_user,
        requires_profile_completion=not result.user.profile_completed,
        token=result.token,
    )


@router.post(
    "/auth/complete-profile",
    summary="Complete profile",
    description="Set display name, username and avatar after the first sign-in.",
    operation_id="completeProfile",
    status_code=201,
    responses={
        201: {"description": "Profile completed"},
        400: {"model": ErrorResponse, "description": "Invalid profile data"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        409: {"model": ErrorResponse, "description": "Username taken or profile already completed"},
    },
)
async def complete_profile(req: CompleteProfileRequest, app: AppDep, auth_token: AuthTokenDep) -> CompleteProfileResponse:
    user = await app.complete_profile(auth_token, req.display_name, req.username, req.avatar_type, req.avatar_data)
    return CompleteProfileResponse(user=user)


@router.post(
    "/auth/logout",
    summary="End session",
    description="Clear the session cookie. Tokens are stateless and stay valid until they expire.",
    operation_id="logout",
    responses={
        200: {"description": "Successfully logged out"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def logout(app: AppDep, auth_token: AuthTokenDep, response: Response) -> dict[str, Any]:
    await app.logout(auth_token)
    response.delete_cookie(AUTH_COOKIE_NAME)
    return {"success": True, "message": "Logged out successfully"}


@router.get(
    "/auth/me",
    summary="Get current user",
    description="Get the profile of the signed-in user.",
    operation_id="getCurrentUser",
    responses={
        200: {"description": "Current user"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def get_current_user(app: AppDep, auth_token: AuthTokenDep) -> UserView:
    return await app.get_current_user(auth_token)
