from typing import Annotated

from fastapi import APIRouter, Depends

from src.core.schemas import RevokedSessionsResponse, SuccessResponse, TokenModel
from src.user.auth.dependencies import get_current_user
from src.user.auth.schemas import LoginUserModel, RefreshTokenModel, SignupUserModel
from src.user.auth.usecases.login import LoginUserUseCase, get_login_user_use_case
from src.user.auth.usecases.logout import LogoutUseCase, get_logout_use_case
from src.user.auth.usecases.refresh import (
    RefreshTokensUseCase,
    get_refresh_tokens_use_case,
)
from src.user.auth.usecases.signup import SignupUseCase, get_signup_use_case
from src.user.models import User
from src.user.schemas import UserProfileViewModel

router = APIRouter()


@router.post(
    "/signup",
    status_code=201,
    response_model=UserProfileViewModel,
)
async def signup_user(
    user_form_data: SignupUserModel,
    use_case: Annotated[SignupUseCase, Depends(get_signup_use_case)],
) -> UserProfileViewModel:
    """
    Create a new user account.
    """
    return await use_case.execute(data=user_form_data)


@router.post("/login", response_model=TokenModel)
async def login_user(
    login_form_data: LoginUserModel,
    use_case: Annotated[LoginUserUseCase, Depends(get_login_user_use_case)],
) -> TokenModel:
    """
    Authenticate user and return an access and refresh token pair.
    """
    return await use_case.execute(data=login_form_data)


@router.post("/refresh", response_model=TokenModel)
async def refresh_tokens(
    data: RefreshTokenModel,
    use_case: Annotated[RefreshTokensUseCase, Depends(get_refresh_tokens_use_case)],
) -> TokenModel:
    """
    Exchange a refresh token for a new token pair. The old refresh token
    stops working.
    """
    return await use_case.execute(data=data)


@router.post("/logout", response_model=SuccessResponse)
async def logout(
    data: RefreshTokenModel,
    use_case: Annotated[LogoutUseCase, Depends(get_logout_use_case)],
) -> SuccessResponse:
    return await use_case.execute(data=data)


@router.post("/logout/all", response_model=RevokedSessionsResponse)
async def logout_everywhere(
    current_user: Annotated[User, Depends(get_current_user)],
    use_case: Annotated[LogoutUseCase, Depends(get_logout_use_case)],
) -> RevokedSessionsResponse:
    """
    Revoke every refresh token of the current user.
    """
    return await use_case.execute_all(user_id=current_user.id)
