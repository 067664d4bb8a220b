"""
Authentication schemas.

These schemas define the API contracts for registration, login and the
bearer token handed back to clients.
"""

import uuid

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class RegisterRequest(BaseModel):
    """User registration request schema."""

    name: str = Field(min_length=1, max_length=100, description="Display name")
    email: EmailStr = Field(description="Login email, unique")
    password: str = Field(min_length=6, max_length=128, description="User password")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank")
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"name": "Ada", "email": "ada@example.com", "password": "securepassword123"}
        }
    )


class LoginRequest(BaseModel):
    """User login request schema."""

    email: EmailStr = Field(description="Login email")
    password: str = Field(min_length=1, max_length=128, description="User password")


class UserResponse(BaseModel):
    """Public user information."""

    id: uuid.UUID = Field(description="User unique identifier")
    email: str = Field(description="Email")
    name: str = Field(description="Display name")

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    """Bearer token plus the user it was issued for."""

    token: str = Field(description="JWT bearer token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(description="Token lifetime in seconds")
    user: UserResponse = Field(description="User information")
