# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the AmbassadorHub API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload
# =============================================================================

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.exceptions import (
    AmbassadorHubException,
    ambassadorhub_exception_handler,
)
from app.routers import ambassadors, billing, directory, health, public
from app.auth import routes as auth_routes
from lib.supabase_client import SupabaseClients

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Runs on startup and shutdown:
    - Startup: Build the Supabase client factory, log config
    - Shutdown: Drop the factory
    """
    # Startup
    logger.info(f"Starting AmbassadorHub API in {settings.ENVIRONMENT} mode")
    logger.info(f"CORS origins: {settings.cors_origins_list}")
    if not settings.STRIPE_SECRET_KEY:
        logger.warning("STRIPE_SECRET_KEY not set; billing endpoints will answer 503")

    app.state.supabase = SupabaseClients.from_settings(settings)

    yield

    # Shutdown
    logger.info("Shutting down AmbassadorHub API")
    app.state.supabase = None


# Create FastAPI application
app = FastAPI(
    title="AmbassadorHub API",
    description="""
## Brand Ambassador Marketplace API

Brand ambassadors publish profiles; staffing agencies subscribe per region to
search them and reveal contact details.

### How It Works

1. **Ambassadors sign up** - profile fields plus a headshot and a short intro video
2. **Agencies subscribe** - Stripe Checkout, one price per region
3. **Agencies search** - the directory only shows countries in subscribed regions
4. **Agencies reveal contacts** - counted against a monthly quota

### Quick Start

```bash
# 1. Start checkout for Europe and Canada
curl -X POST http://localhost:8000/api/v1/billing/checkout \\
  -H "Authorization: Bearer $TOKEN" \\
  -H "Content-Type: application/json" \\
  -d '{"price_ids": ["price_europe", "price_canada"]}'

# 2. Search the directory
curl "http://localhost:8000/api/v1/directory?q=promo&role_ids=1,3&match=all" \\
  -H "Authorization: Bearer $TOKEN"

# 3. Reveal a contact
curl -X POST http://localhost:8000/api/v1/directory/{id}/reveal \\
  -H "Authorization: Bearer $TOKEN"
```
""",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Auth",
            "description": "Session cookies and token verification",
        },
        {
            "name": "Directory",
            "description": "Subscriber search, profiles and contact reveals",
        },
        {
            "name": "Ambassadors",
            "description": "Ambassador signup and profile editing",
        },
        {
            "name": "Billing",
            "description": "Stripe checkout, webhooks and subscription status",
        },
        {
            "name": "Public",
            "description": "Landing page stats and agency access requests",
        },
        {
            "name": "Health",
            "description": "API health and readiness checks",
        },
    ],
)


# =============================================================================
# Middleware
# =============================================================================

# CORS middleware - allows cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(AmbassadorHubException)
async def handle_ambassadorhub_exception(request: Request, exc: AmbassadorHubException):
    """Handle custom AmbassadorHub exceptions."""
    return await ambassadorhub_exception_handler(request, exc)


@app.exception_handler(Exception)
async def handle_general_exception(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        }
    )


# =============================================================================
# Routers
# =============================================================================

# Authentication endpoints
app.include_router(
    auth_routes.router,
    prefix="/api/v1/auth",
    tags=["Auth"]
)

# Health check endpoints
app.include_router(
    health.router,
    prefix="/api/v1",
    tags=["Health"]
)

# Directory search and contact reveal
app.include_router(
    directory.router,
    prefix="/api/v1/directory",
    tags=["Directory"]
)

# Ambassador profiles
app.include_router(
    ambassadors.router,
    prefix="/api/v1/ambassadors",
    tags=["Ambassadors"]
)

# Stripe billing
app.include_router(
    billing.router,
    prefix="/api/v1/billing",
    tags=["Billing"]
)

# Stats and agency requests
app.include_router(
    public.router,
    prefix="/api/v1",
    tags=["Public"]
)


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - returns API info.
    """
    return {
        "name": "AmbassadorHub API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/v1/health",
    }
