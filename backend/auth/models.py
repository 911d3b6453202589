from typing import Optional

from pydantic import BaseModel, Field


class SignupRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class PasswordResetRequest(BaseModel):
    email: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    email: Optional[str] = None
    code: Optional[str | int] = None
    new_password: Optional[str] = Field(default=None, alias="newPassword")

    model_config = {"populate_by_name": True}


class ChangePasswordRequest(BaseModel):
    current_password: Optional[str] = Field(default=None, alias="currentPassword")
    new_password: Optional[str] = Field(default=None, alias="newPassword")

    model_config = {"populate_by_name": True}


class UserResponse(BaseModel):
    id: int
    email: str
    name: str
    coach_persona: str = Field(serialization_alias="coachPersona")


class TokenResponse(BaseModel):
    message: str
    token: str
    user: UserResponse
