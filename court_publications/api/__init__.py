"""API routes for court publications."""

from fastapi import APIRouter

from .publications import router as publications_router
from .subscriptions import list_type_router as list_type_subscriptions_router
from .subscriptions import router as subscriptions_router

# Main API router
api_router = APIRouter()

# Source-system ingestion and public access
api_router.include_router(publications_router)

# Signed-in user subscriptions
api_router.include_router(subscriptions_router)
api_router.include_router(list_type_subscriptions_router)

__all__ = ["api_router"]
