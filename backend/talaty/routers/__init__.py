"""Talaty eKYC - API Routers"""
from .auth import router as auth_router
from .documents import router as documents_router
from .forms import router as forms_router
from .scores import router as scores_router
from .users import router as users_router
from .admin import router as admin_router
from .scheduler import router as scheduler_router

__all__ = [
    "auth_router",
    "documents_router",
    "forms_router",
    "scores_router",
    "users_router",
    "admin_router",
    "scheduler_router",
]
