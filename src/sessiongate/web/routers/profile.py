from fastapi import APIRouter

from sessiongate.core.modules.user.models import UserView
from sessiongate.web.deps import CurrentUserDep, SessionExpiresDep
from sessiongate.web.openapi import ApiResponse, ErrorResponse

router = APIRouter(tags=["profile"])


@router.get(
    "/profile",
    summary="Get current user profile",
    description="Get the profile of the currently authenticated user, including the refreshed session expiry.",
    operation_id="getCurrentUserProfile",
    responses={
        200: {"description": "Current user profile"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def get_profile(current_user: CurrentUserDep, session_expires_at: SessionExpiresDep) -> ApiResponse[UserView]:
    view = UserView.from_domain(current_user).model_copy(update={"expires_at": session_expires_at})
    return ApiResponse[UserView](message="Current user", data=view)
