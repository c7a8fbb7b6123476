"""API Routes module"""
from fastapi import APIRouter

from .tickets import router as tickets_router
from .automation import router as automation_router
from .channels import router as channels_router
from .email import router as email_router
from .storage import router as storage_router

# Main API router
api_router = APIRouter()

api_router.include_router(tickets_router, prefix="/tickets", tags=["Tickets"])
api_router.include_router(automation_router, prefix="/automation", tags=["Automation"])
api_router.include_router(channels_router, prefix="/channels", tags=["Channels"])
api_router.include_router(email_router, prefix="/email", tags=["Email"])
api_router.include_router(storage_router, tags=["Storage"])

__all__ = ["api_router"]
