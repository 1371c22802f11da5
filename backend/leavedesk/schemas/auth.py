from __future__ import annotations

from pydantic import BaseModel, Field

from leavedesk.schemas.user import UserRead


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1)


class TokenRead(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead
