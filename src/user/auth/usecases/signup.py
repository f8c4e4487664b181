from fastapi import Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from loggers import get_logger
from src.core.database.session import get_session
from src.core.errors.exceptions import InstanceAlreadyExistsException
from src.core.utils.security import hash_password_async
from src.user.auth.schemas import SignupUserModel
from src.user.repositories import UserRepository
from src.user.schemas import UserProfileViewModel

USERNAME_TAKEN_MESSAGE = "Username already taken"
logger = get_logger(__name__)


class SignupUseCase:
    """Use case for user registration."""

    def __init__(self, session: AsyncSession, repository: UserRepository) -> None:
        self.session = session
        self.repository = repository

    async def execute(self, data: SignupUserModel) -> UserProfileViewModel:
        if await self.repository.exists(self.session, username=data.username):
            logger.debug("[Signup] Username '%s' already taken.", data.username)
            raise InstanceAlreadyExistsException(USERNAME_TAKEN_MESSAGE)

        password_hash = await hash_password_async(data.password)

        try:
            user = await self.repository.create(
                self.session,
                data={
                    "username": data.username,
                    "password_hash": password_hash,
                    "secret_message": data.secret_message,
                },
                commit=True,
            )
        except IntegrityError:
            # Lost a race against a concurrent signup with the same username
            raise InstanceAlreadyExistsException(USERNAME_TAKEN_MESSAGE)

        logger.info("[Signup] User '%s' registered successfully.", data.username)
        return UserProfileViewModel.model_validate(user)


def get_signup_use_case(
    session: AsyncSession = Depends(get_session),
) -> SignupUseCase:
    return SignupUseCase(session=session, repository=UserRepository())
