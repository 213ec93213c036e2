"""Main API router aggregating all module routers."""

from fastapi import APIRouter

from examtrack.api.v1.endpoints import (
    audit,
    auth,
    exams,
    notifications,
    performance,
    results,
    users,
)

api_router = APIRouter()

# Authentication
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["Authentication"],
)

# User management (admin)
api_router.include_router(
    users.router,
    prefix="/users",
    tags=["Users"],
)

# Exams
api_router.include_router(
    exams.router,
    prefix="/exams",
    tags=["Exams"],
)

# Results
api_router.include_router(
    results.router,
    prefix="/results",
    tags=["Results"],
)

# Performance analytics and dashboard
api_router.include_router(
    performance.router,
    prefix="/performance",
    tags=["Performance"],
)

# Notifications
api_router.include_router(
    notifications.router,
    prefix="/notifications",
    tags=["Notifications"],
)

# Audit Logs (admin)
api_router.include_router(
    audit.router,
    prefix="/audit-logs",
    tags=["Audit Logs"],
)
