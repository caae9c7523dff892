"""
API routes aggregation.
"""

from fastapi import APIRouter

from .sdk import router as sdk_router

router = APIRouter()

router.include_router(sdk_router, prefix="/sdk/{environment}", tags=["sdk"])
