# app/api/v1/router.py
# Master router -- registers all endpoint routers under /api/v1
# Each endpoint module registers its own router with its own prefix and tags

from fastapi import APIRouter

from app.api.v1.endpoints import (
    associations,
    classes,
    demos,
    notifications,
    requirements,
)

api_router = APIRouter()

# Requirements & tutor candidates
api_router.include_router(requirements.router, prefix="/requirements", tags=["Requirements"])
api_router.include_router(
    associations.router,
    prefix="/requirements/{requirement_id}/tutors",
    tags=["Tutor Associations"],
)

# Demos
api_router.include_router(demos.router, prefix="/demos", tags=["Demos"])

# Classes
api_router.include_router(classes.router, prefix="/classes", tags=["Classes"])

# Notifications
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
