"""
API v1 router initialization and setup.
"""
from fastapi import APIRouter
from .endpoints import users, offers, matches, shipments, deliverables, creator

api_router = APIRouter()

api_router.include_router(
    users.router,
    prefix="/users",
    tags=["users"]
)

api_router.include_router(
    offers.router,
    prefix="/offers",
    tags=["offers"]
)

api_router.include_router(
    matches.router,
    prefix="/matches",
    tags=["matches"]
)

api_router.include_router(
    shipments.router,
    prefix="/shipments",
    tags=["shipments"]
)

api_router.include_router(
    deliverables.router,
    prefix="/deliverables",
    tags=["deliverables"]
)

api_router.include_router(
    creator.router,
    prefix="/creator",
    tags=["creator"]
)
