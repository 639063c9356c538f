"""API v1 router aggregating all endpoints."""

from fastapi import APIRouter

from app.api.v1 import (
    health,
    notifications,
    providers,
    scheduling,
    sessions,
    users,
)

api_router = APIRouter()

# Health check
api_router.include_router(
    health.router,
    prefix="/health",
    tags=["health"],
)

# Authentication
api_router.include_router(
    sessions.router,
    prefix="/sessions",
    tags=["sessions"],
)

# Accounts
api_router.include_router(
    users.router,
    prefix="/users",
    tags=["users"],
)

api_router.include_router(
    providers.router,
    prefix="/providers",
    tags=["providers"],
)

# Appointments and provider schedule
api_router.include_router(
    scheduling.router,
    tags=["scheduling"],
)

# Provider notifications
api_router.include_router(
    notifications.router,
    prefix="/notifications",
    tags=["notifications"],
)
