from datetime import datetime

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from sessiongate.core.modules.access.models import REJECTION_MESSAGES, RejectionCode
from sessiongate.core.modules.session.models import SessionFailure
from sessiongate.core.modules.user.models import UserView
from sessiongate.web.deps import AppDep, CurrentUserDep
from sessiongate.web.error_handlers import create_json_error_response
from sessiongate.web.openapi import ApiResponse, ErrorResponse

router = APIRouter(tags=["auth"])


class LoginRequest(BaseModel):
    """Authentication request."""

    username: str = Field(..., min_length=1, description="Username for authentication")
    password: str = Field(..., min_length=1, description="Password for authentication")


class LoginData(UserView):
    """Account information plus the credentials of the new session."""

    session_token: str = Field(..., description="Send back in the session token header on protected requests")


class LogoutRequest(BaseModel):
    username: str = Field(..., min_length=1, description="User whose session ends")


class SessionData(BaseModel):
    username: str
    expires_at: datetime | None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SessionCheckResponse(ApiResponse[SessionData]):
    """Session-check result; `valid` mirrors the session state."""

    valid: bool = Field(True, description="Whether the session is live")


class ChangePasswordRequest(BaseModel):
    """Request to change the current user's password."""

    current_password: str = Field(..., min_length=1, description="Current password")
    new_password: str = Field(..., min_length=1, description="New password")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


@router.post(
    "/auth/login",
    summary="Authenticate user",
    description="Authenticate with username and password. Any previous session of the user is replaced.",
    operation_id="login",
    responses={
        200: {"description": "Successfully authenticated"},
        400: {"model": ErrorResponse, "description": "Missing fields"},
        401: {"model": ErrorResponse, "description": "Invalid password"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
)
async def login(login_data: LoginRequest, app: AppDep) -> ApiResponse[LoginData]:
    user, grant = await app.login(login_data.username, login_data.password)
    data = LoginData(**user.model_dump(), session_token=grant.token)
    return ApiResponse[LoginData](message="Login successful", data=data)


@router.post(
    "/auth/logout",
    summary="End session",
    description="Clear the session of the given user.",
    operation_id="logout",
    responses={
        200: {"description": "Successfully logged out"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
)
async def logout(logout_data: LogoutRequest, app: AppDep) -> ApiResponse[None]:
    await app.logout(logout_data.username)
    return ApiResponse[None](message="Logout successful")


@router.get(
    "/auth/session",
    summary="Check session",
    description="Report whether a session is live without extending it. Safe to poll.",
    operation_id="checkSession",
    response_model=SessionCheckResponse,
    responses={
        200: {"description": "Session is valid"},
        400: {"model": ErrorResponse, "description": "Identity or token missing"},
        401: {"model": ErrorResponse, "description": "Session expired or replaced"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
)
async def check_session(
    request: Request,
    app: AppDep,
    username: str | None = Query(None, description="Falls back to the identity header when omitted"),
) -> SessionCheckResponse | JSONResponse:
    identity = username or request.headers.get(app.config.identity_header)
    token = request.headers.get(app.config.token_header)
    if not identity or not token:
        code = RejectionCode.MISSING_HEADERS
        return create_json_error_response(400, REJECTION_MESSAGES[code], code.value, valid=False)

    user, check = await app.check_session(identity, token)
    if not check.valid:
        replaced = check.reason == SessionFailure.TOKEN_MISMATCH
        code = RejectionCode.SESSION_REPLACED if replaced else RejectionCode.SESSION_EXPIRED
        return create_json_error_response(401, REJECTION_MESSAGES[code], code.value, valid=False)

    data = SessionData(username=user.username, expires_at=check.expires_at)
    return SessionCheckResponse(message="Session is valid", code="SESSION_VALID", data=data)


@router.post(
    "/auth/change-password",
    summary="Change password",
    description="Change the password for the currently authenticated user.",
    operation_id="changePassword",
    responses={
        200: {"description": "Password changed successfully"},
        400: {"model": ErrorResponse, "description": "New password rejected"},
        401: {"model": ErrorResponse, "description": "Not authenticated or invalid current password"},
    },
)
async def change_password(request: ChangePasswordRequest, app: AppDep, current_user: CurrentUserDep) -> ApiResponse[None]:
    await app.change_password(current_user, request.current_password, request.new_password)
    return ApiResponse[None](message="Password changed")
