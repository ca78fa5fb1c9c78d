from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional

class LoginRequest(BaseModel):
    username: str = Field(..., description="Admin username")
    password: str = Field(..., description="Admin password")

    @field_validator('username', 'password')
    @classmethod
    def not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError('Username and password are required')
        return v

class ChangePasswordRequest(BaseModel):
    currentPassword: str = Field(..., min_length=1, description="Current password")
    newPassword: str = Field(..., min_length=1, description="New password")

class AdminPublic(BaseModel):
    id: int
    username: str
    email: str

    model_config = ConfigDict(from_attributes=True)

class LoginResponse(BaseModel):
    message: str
    user: AdminPublic

class AuthStatus(BaseModel):
    authenticated: bool
    user: Optional[AdminPublic] = None

class MessageResponse(BaseModel):
    message: str
