# =============================================================================
# lib/supabase_client.py - Supabase Client Factory
# =============================================================================
# Builds the two kinds of Supabase clients the API needs:
# - admin(): service_role client, bypasses Row Level Security. Used for
#   webhooks, aggregate stats and storage writes.
# - for_user(token): anon-key client carrying the caller's JWT, so every
#   PostgREST call and RPC runs under RLS as that user.
# - refresh_session(token): trades a session refresh token for new tokens.
#
# One factory is constructed at application startup (see app/main.py
# lifespan) and handed to routes through app.dependencies.get_supabase.
#
# Usage:
#   clients = SupabaseClients.from_settings(settings)
#   rows = clients.admin().table("ambassadors").select("country").execute()
# =============================================================================

from __future__ import annotations

import logging
from typing import Any

from supabase import create_client, Client

logger = logging.getLogger(__name__)

# PostgREST code for ".single()" matching zero rows
NO_ROWS_CODE = "PGRST116"


class SupabaseClientError(Exception):
    """
    Error during Supabase operations.

    Errors should tell HOW to fix, not just WHAT failed.
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f" Suggestion: {self.suggestion}"
        return result


def error_message(exc: Exception) -> str:
    """
    Best human-readable message from a postgrest/storage exception.

    postgrest.APIError keeps the database message on `.message`; other
    exceptions fall back to str().
    """
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(exc)


def is_no_rows_error(exc: Exception) -> bool:
    """True when a `.single()` query failed because nothing matched."""
    return getattr(exc, "code", None) == NO_ROWS_CODE or NO_ROWS_CODE in str(exc)


class SupabaseClients:
    """
    Factory for Supabase clients with an explicit lifecycle.

    The admin client is created lazily once per factory; user clients are
    created per request since they carry that request's access token.
    """

    def __init__(self, url: str, anon_key: str, service_key: str):
        self.url = url
        self._anon_key = anon_key
        self._service_key = service_key
        self._admin: Client | None = None

    @classmethod
    def from_settings(cls, settings: Any) -> "SupabaseClients":
        return cls(
            url=settings.SUPABASE_URL,
            anon_key=settings.SUPABASE_ANON_KEY,
            service_key=settings.SUPABASE_SERVICE_KEY,
        )

    def admin(self) -> Client:
        """
        Service-role client (bypasses RLS).

        Raises:
            SupabaseClientError: If client creation fails
        """
        if self._admin is None:
            try:
                self._admin = create_client(self.url, self._service_key)
                logger.info("Supabase admin client initialized")
            except Exception as e:
                raise SupabaseClientError(
                    message=f"Failed to create Supabase client: {e}",
                    code="CLIENT_INIT_FAILED",
                    suggestion="Check SUPABASE_URL and SUPABASE_SERVICE_KEY in your .env file",
                )
        return self._admin

    def for_user(self, access_token: str) -> Client:
        """
        Anon-key client acting as the user who owns `access_token`.

        Raises:
            SupabaseClientError: If client creation fails
        """
        try:
            client = create_client(self.url, self._anon_key)
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to create Supabase client: {e}",
                code="CLIENT_INIT_FAILED",
                suggestion="Check SUPABASE_URL and SUPABASE_ANON_KEY in your .env file",
            )
        client.postgrest.auth(access_token)
        return client

    def refresh_session(self, refresh_token: str) -> tuple[str, str]:
        """
        Exchange a refresh token for a new (access_token, refresh_token) pair.

        Supabase rotates refresh tokens, so the returned one replaces the old.

        Raises:
            SupabaseClientError: If the refresh token is rejected or expired
        """
        try:
            result = create_client(self.url, self._anon_key).auth.refresh_session(refresh_token)
        except Exception as e:
            raise SupabaseClientError(
                message=f"Session refresh failed: {e}",
                code="REFRESH_FAILED",
                suggestion="Sign in again",
            )
        session = getattr(result, "session", None)
        if session is None or not session.access_token:
            raise SupabaseClientError(
                message="Session refresh returned no session",
                code="REFRESH_FAILED",
                suggestion="Sign in again",
            )
        return session.access_token, session.refresh_token
