from pydantic import Field, field_validator

from src.core.schemas import Base
from src.core.validations import USERNAME_VALIDATOR


class SignupUserModel(Base):
    username: str
    password: str = Field(min_length=1)
    secret_message: str = Field(min_length=1)

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str) -> str:
        if not USERNAME_VALIDATOR.match(value):
            raise ValueError(
                "Username must be from 3 to 60 symbols and contain alphanumeric characters, underscore, dash, and dot"
            )
        return value


class LoginUserModel(Base):
    username: str
    password: str


class RefreshTokenModel(Base):
    refresh_token: str = Field(min_length=1)
