"""Authentication and user Pydantic v2 schemas.

Defines request/response schemas for account login, voter login, token
refresh, and account management.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class RefreshRequest(BaseModel):
    """Token refresh request."""

    refresh_token: str


class TokenResponse(BaseModel):
    """JWT token pair response."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Access token expiration in seconds")


class VoterLoginRequest(BaseModel):
    """Voter sign-in with the credentials sent to them."""

    email: EmailStr
    password: str = Field(min_length=1)


class VoterTokenResponse(BaseModel):
    """Access token identifying a voter."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Access token expiration in seconds")
    voter_id: UUID
    election_id: UUID | None = None


class UserCreateRequest(BaseModel):
    """Request to create a new account."""

    username: str = Field(min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8)
    role: str = Field(pattern="^(admin|voter)$")


class UserResponse(BaseModel):
    """Account information response."""

    id: UUID
    username: str
    email: str
    role: str
    is_active: bool
    created_at: datetime
    last_login_at: datetime | None = None

    model_config = {"from_attributes": True}
