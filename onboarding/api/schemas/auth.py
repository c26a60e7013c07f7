"""Pydantic schemas for authentication endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

# --- Request Schemas ---


class LoginRequest(BaseModel):
    """Request schema for credential login."""

    email: EmailStr = Field(..., description="Credential email address")
    password: str = Field(..., description="Credential password")


class RefreshTokenRequest(BaseModel):
    """Request schema for token refresh."""

    refresh_token: str = Field(..., description="Refresh token")


# --- Response Schemas ---


class TokenResponse(BaseModel):
    """Response schema containing JWT tokens."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str | None = Field(None, description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token TTL in seconds")


class CredentialResponse(BaseModel):
    """Response schema for credential data."""

    id: str = Field(..., description="Credential ID")
    email: str = Field(..., description="Credential email")
    role: str = Field(..., description="Credential role")
    is_active: bool = Field(..., description="Whether the credential can log in")
    account_id: str | None = Field(None, description="Owned account ID")
    email_verified_at: datetime | None = Field(None, description="Email verification timestamp")
    last_login_at: datetime | None = Field(None, description="Last login timestamp")


class LoginResponse(BaseModel):
    """Response schema for credential login."""

    message: str = Field(default="Login successful")
    credential: CredentialResponse
    tokens: TokenResponse


class MeResponse(BaseModel):
    """Response schema for current credential info."""

    credential: CredentialResponse
