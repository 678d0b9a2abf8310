from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel, Field

from sessiongate.core.modules.user.models import Role, UserView
from sessiongate.web.deps import AppDep, CurrentUserDep
from sessiongate.web.openapi import ApiResponse, ErrorResponse

router = APIRouter(tags=["users"])


class CreateUserRequest(BaseModel):
    """Request to create a new user."""

    username: str = Field(..., min_length=1, description="Username for the new user")
    password: str = Field(..., min_length=1, description="Password for the new user")
    role: Role = Field("user", description="Account role")


@router.get(
    "/users",
    summary="List all users",
    description="Get all users in the system. Passwords and session tokens are never returned.",
    operation_id="listUsers",
    responses={
        200: {"description": "List of all users"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def list_users(app: AppDep, _: CurrentUserDep) -> ApiResponse[list[UserView]]:
    return ApiResponse[list[UserView]](message="Users retrieved", data=await app.get_all_users())


@router.post(
    "/users",
    summary="Create new user",
    description="Create a new user account. Only accessible by admin users.",
    operation_id="createUser",
    responses={
        201: {"description": "User created successfully"},
        400: {"model": ErrorResponse, "description": "Invalid request or username taken"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Admin privileges required"},
    },
    status_code=201,
)
async def create_user(create_data: CreateUserRequest, app: AppDep, current_user: CurrentUserDep) -> ApiResponse[UserView]:
    user = await app.create_user(current_user, create_data.username, create_data.password, create_data.role)
    return ApiResponse[UserView](message="User created", data=user)


@router.get(
    "/users/{user_id}",
    summary="Get user",
    description="Get one user by id.",
    operation_id="getUser",
    responses={
        200: {"description": "The user"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
)
async def get_user(user_id: UUID, app: AppDep, _: CurrentUserDep) -> ApiResponse[UserView]:
    return ApiResponse[UserView](message="User retrieved", data=await app.get_user(user_id))


@router.delete(
    "/users/{user_id}",
    summary="Delete user",
    description="Delete a user account. Only accessible by admin users. Admins cannot delete themselves.",
    operation_id="deleteUser",
    responses={
        200: {"description": "User deleted successfully"},
        400: {"model": ErrorResponse, "description": "Self-deletion"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Admin privileges required"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
)
async def delete_user(user_id: UUID, app: AppDep, current_user: CurrentUserDep) -> ApiResponse[None]:
    await app.delete_user(current_user, user_id)
    return ApiResponse[None](message="User deleted")
