# =============================================================================
# app/auth/models.py - Authentication Models
# =============================================================================
# Pydantic models for authentication data.
# =============================================================================

from pydantic import BaseModel, Field
from uuid import UUID
from typing import Optional


class AuthUser(BaseModel):
    """
    Authenticated user extracted from Supabase JWT.

    This is the minimal user info available from the token itself,
    without querying the database. The raw token is kept so services can
    build a Supabase client that acts as this user (RLS).
    """
    id: UUID
    email: Optional[str] = None
    role: Optional[str] = None
    access_token: Optional[str] = Field(default=None, repr=False, exclude=True)

    class Config:
        frozen = True  # Make immutable


class UserResponse(BaseModel):
    """Current user as returned by /auth/me."""
    id: UUID
    email: Optional[str] = None
    role: Optional[str] = None
    is_ambassador: bool = False
    has_active_subscription: bool = False


class SetSessionRequest(BaseModel):
    """
    Tokens from a client-side Supabase sign-in.

    Both are optional at the schema level so a missing one gets the
    endpoint's own 400 instead of a validation error.
    """
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None


class TokenPayload(BaseModel):
    """
    Decoded JWT token payload from Supabase.

    Supabase tokens include standard JWT claims plus custom claims.
    """
    sub: str  # User ID
    email: Optional[str] = None
    aud: str  # Audience (should be "authenticated")
    exp: int  # Expiration timestamp
    iat: Optional[int] = None  # Issued at timestamp
    role: Optional[str] = None  # User role
