"""Profile route - API v1."""

from fastapi import APIRouter, Depends

from ...api.dependencies import get_current_user
from ...models.user import User
from ...schemas.user import UserResponse

router = APIRouter(tags=["profile"])


@router.get("/profile", response_model=UserResponse)
def get_profile(current_user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(current_user)
