# =============================================================================
# app/auth/dependencies.py - FastAPI Auth Dependencies
# =============================================================================
# Provides dependency injection for authentication.
#
# The access token is read from the Authorization header, or from the
# sb-access-token cookie set by POST /auth/set-session. An expired cookie
# session is renewed with the sb-refresh-token cookie.
#
# Supports both:
# - ES256 (new Supabase JWT signing keys) via JWKS
# - HS256 (legacy Supabase JWT secret) as fallback
#
# Usage:
#   from app.auth import get_current_user, AuthUser
#
#   @router.get("/protected")
#   async def protected(user: AuthUser = Depends(get_current_user)):
#       return {"user_id": user.id}
# =============================================================================

import logging
import time
from typing import Optional
from uuid import UUID

import httpx
from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError, ExpiredSignatureError
from pydantic import ValidationError

from app.config import settings
from app.auth.models import AuthUser, TokenPayload
from app.dependencies import SupabaseDep
from lib.supabase_client import SupabaseClients, SupabaseClientError

logger = logging.getLogger(__name__)

# HTTP Bearer token extractor (cookie fallback, so never auto-error)
security_optional = HTTPBearer(auto_error=False)

# Session cookie names
ACCESS_COOKIE = "sb-access-token"
REFRESH_COOKIE = "sb-refresh-token"

# Refresh tokens outlive access tokens; keep the cookie for 30 days
REFRESH_COOKIE_MAX_AGE = 60 * 60 * 24 * 30

# Cache for JWKS keys
_jwks_cache: dict = {}
_jwks_cache_time: float = 0
JWKS_CACHE_TTL = 3600  # 1 hour


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _get_jwks_url() -> str:
    """Get the JWKS URL from Supabase URL."""
    supabase_url = settings.SUPABASE_URL.rstrip('/')
    return f"{supabase_url}/auth/v1/.well-known/jwks.json"


def _fetch_jwks() -> dict:
    """Fetch JWKS from Supabase with caching."""
    global _jwks_cache, _jwks_cache_time

    current_time = time.time()

    # Return cached if valid
    if _jwks_cache and (current_time - _jwks_cache_time) < JWKS_CACHE_TTL:
        return _jwks_cache

    try:
        jwks_url = _get_jwks_url()
        response = httpx.get(jwks_url, timeout=10)
        response.raise_for_status()
        _jwks_cache = response.json()
        _jwks_cache_time = current_time
        logger.debug(f"Fetched JWKS from {jwks_url}")
        return _jwks_cache
    except httpx.HTTPError as e:
        logger.warning(f"Failed to fetch JWKS: {e}")
        # Serve an expired cache rather than nothing
        if _jwks_cache:
            return _jwks_cache
        return {"keys": []}


def _get_signing_key(token: str) -> tuple:
    """
    Get the appropriate signing key for a token.

    Returns:
        Tuple of (key, algorithm) to use for verification
    """
    try:
        unverified_header = jwt.get_unverified_header(token)
    except JWTError:
        return settings.SUPABASE_JWT_SECRET, "HS256"

    alg = unverified_header.get("alg", "HS256")
    kid = unverified_header.get("kid")

    if alg == "HS256":
        return settings.SUPABASE_JWT_SECRET, "HS256"

    # ES256 and friends: look the key up in JWKS
    if kid:
        for key in _fetch_jwks().get("keys", []):
            if key.get("kid") == kid:
                return key, alg

    logger.warning(f"Could not find key for alg={alg}, kid={kid}, falling back to HS256")
    return settings.SUPABASE_JWT_SECRET, "HS256"


def decode_access_token(token: str) -> AuthUser:
    """
    Verify a Supabase access token and return its user.

    Raises:
        HTTPException: 401 if the token is invalid, expired or has no user ID
    """
    try:
        signing_key, algorithm = _get_signing_key(token)
        payload = jwt.decode(
            token,
            signing_key,
            algorithms=[algorithm],
            audience="authenticated",
        )
    except ExpiredSignatureError:
        logger.warning("JWT token has expired")
        raise _unauthorized("Token has expired")
    except JWTError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise _unauthorized(f"Invalid token: {str(e)}")

    try:
        claims = TokenPayload(**payload)
    except ValidationError:
        logger.warning("JWT token missing required claims")
        raise _unauthorized("Invalid token: missing user ID")

    try:
        user_uuid = UUID(claims.sub)
    except ValueError:
        logger.warning(f"Invalid UUID in token: {claims.sub}")
        raise _unauthorized("Invalid token: malformed user ID")

    logger.debug(f"Authenticated user: {claims.sub}")
    return AuthUser(id=user_uuid, email=claims.email, role=claims.role, access_token=token)


def _access_max_age(token: str) -> int | None:
    """Seconds until the token's exp claim (None if unreadable)."""
    try:
        exp = jwt.get_unverified_claims(token).get("exp")
    except JWTError:
        return None
    if not isinstance(exp, (int, float)):
        return None
    return max(0, int(exp - time.time()))


def set_session_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    """Write both session cookies (HttpOnly, SameSite=Lax)."""
    cookie_options = {
        "httponly": True,
        "secure": settings.AUTH_COOKIE_SECURE,
        "samesite": "lax",
        "path": "/",
    }
    response.set_cookie(
        ACCESS_COOKIE,
        access_token,
        max_age=_access_max_age(access_token),
        **cookie_options,
    )
    response.set_cookie(
        REFRESH_COOKIE,
        refresh_token,
        max_age=REFRESH_COOKIE_MAX_AGE,
        **cookie_options,
    )


def _refreshed_user(clients: SupabaseClients, refresh_token: str, response: Response) -> AuthUser:
    """Trade the refresh cookie for a new session and re-set both cookies."""
    try:
        access_token, new_refresh = clients.refresh_session(refresh_token)
    except SupabaseClientError as e:
        logger.warning(f"Session refresh failed: {e}")
        raise _unauthorized("Session expired")

    user = decode_access_token(access_token)
    set_session_cookies(response, access_token, new_refresh or refresh_token)
    logger.info(f"Session refreshed for user {user.id}")
    return user


async def get_current_user(
    request: Request,
    response: Response,
    clients: SupabaseDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_optional),
) -> AuthUser:
    """
    Extract and validate the user from a Supabase JWT.

    This dependency:
    1. Takes the Bearer token, or the sb-access-token cookie
    2. Verifies the JWT signature (supports ES256 and HS256)
    3. Validates the token hasn't expired
    4. Returns an AuthUser carrying the user's ID, email and token

    A cookie session whose access token is missing or no longer verifies is
    renewed from the sb-refresh-token cookie.

    Raises:
        HTTPException: 401 if no token is present, or it is invalid or expired
            and can't be refreshed
    """
    if credentials is not None and credentials.credentials:
        return decode_access_token(credentials.credentials)

    access_token = request.cookies.get(ACCESS_COOKIE)
    refresh_token = request.cookies.get(REFRESH_COOKIE)

    if access_token:
        try:
            return decode_access_token(access_token)
        except HTTPException:
            if not refresh_token:
                raise
    elif not refresh_token:
        raise _unauthorized("Not authenticated")

    return _refreshed_user(clients, refresh_token, response)
