"""
API v1 package.

Contains versioned API routes for the activation code service.
"""

from fastapi import APIRouter

from src.api.v1.admin import public_router as admin_public_router
from src.api.v1.admin import router as admin_router
from src.api.v1.routes import router as activation_router

router = APIRouter()
router.include_router(activation_router)
router.include_router(admin_public_router)
router.include_router(admin_router)

__all__ = ["router"]
