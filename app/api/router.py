"""
Formloop — Main API Router

Aggregates all sub-routers under a single prefix so that ``app.main``
can mount the entire API surface with one ``include_router`` call.
"""

from fastapi import APIRouter

from app.api import forms, users

router = APIRouter()

router.include_router(forms.router, prefix="/forms", tags=["Forms"])
router.include_router(users.router, prefix="/users", tags=["Users"])
