from typing import Literal

from pydantic import BaseModel, ConfigDict


class Base(BaseModel):
    model_config = ConfigDict(
        from_attributes=True, use_enum_values=True, extra="forbid"
    )


class SuccessResponse(Base):
    success: bool


class TokenModel(Base):
    access_token: str
    refresh_token: str
    token_type: Literal["bearer"] = "bearer"


class RevokedSessionsResponse(Base):
    revoked: int
