from pydantic import BaseModel, Field

from .common import UserRole


class SignInRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class SignUpRequest(BaseModel):
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=1, max_length=255)
    phone: str | None = None


class SessionResponse(BaseModel):
    user_id: str
    role: UserRole
    full_name: str
    email: str


class SignInResponse(SessionResponse):
    id_token: str
    refresh_token: str
    expires_in: int
