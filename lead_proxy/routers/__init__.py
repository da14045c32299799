"""Router package exposing all API routers."""

from fastapi import APIRouter

from .submit.router import router as submit_router

router = APIRouter()
router.include_router(submit_router)

__all__ = ["router", "submit_router"]
