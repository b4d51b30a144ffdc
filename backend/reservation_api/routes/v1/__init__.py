"""Versioned API routers mounted under /api/v1."""

from fastapi import APIRouter

from . import admin, catalog, payments, profile, reservations

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(catalog.router)
api_router.include_router(reservations.router)
api_router.include_router(payments.router)
api_router.include_router(profile.router)
api_router.include_router(admin.router)

__all__ = ["api_router"]
