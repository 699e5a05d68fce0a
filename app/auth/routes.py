# =============================================================================
# app/auth/routes.py - Authentication Routes
# =============================================================================
# API endpoints for authentication-related operations.
#
# Note: Actual signup/login is handled by Supabase Auth client-side.
# These routes bridge the client session into HttpOnly cookies and report
# who the caller is.
# =============================================================================

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.auth.dependencies import decode_access_token, get_current_user, set_session_cookies
from app.auth.models import AuthUser, SetSessionRequest, UserResponse
from app.dependencies import SupabaseDep
from core.services.subscription_service import latest_active_subscription

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/set-session")
async def set_session(body: SetSessionRequest, response: Response) -> dict:
    """
    Store a client-side Supabase session in HttpOnly cookies.

    Returns:
        {"ok": true}

    Raises:
        400: If either token is missing
        401: If the access token doesn't verify
    """
    if not body.access_token or not body.refresh_token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing tokens")

    user = decode_access_token(body.access_token)
    set_session_cookies(response, body.access_token, body.refresh_token)

    logger.info(f"Session cookies set for user {user.id}")
    return {"ok": True}


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    clients: SupabaseDep,
    user: AuthUser = Depends(get_current_user),
) -> UserResponse:
    """
    Get the current authenticated user, with whether they are an ambassador
    and whether their agency subscription grants directory access.

    Raises:
        401: If not authenticated
    """
    client = clients.for_user(user.access_token)

    profile = (
        client.table("ambassadors")
        .select("id")
        .eq("user_id", str(user.id))
        .limit(1)
        .execute()
    )
    subscription = latest_active_subscription(client, str(user.id))

    return UserResponse(
        id=user.id,
        email=user.email,
        role=user.role,
        is_ambassador=bool(profile.data),
        has_active_subscription=subscription is not None,
    )


@router.get("/verify")
async def verify_token(
    user: AuthUser = Depends(get_current_user)
) -> dict:
    """
    Verify that the current token is valid.

    Useful for checking if a stored token is still valid.

    Raises:
        401: If token is invalid or expired
    """
    return {
        "valid": True,
        "user_id": str(user.id),
        "email": user.email
    }
