"""
Formloop — FastAPI dependencies.

The record store is created in the application lifespan and kept on
``app.state``; routes reach it only through these providers, which tests
can replace via ``app.dependency_overrides``.
"""

from fastapi import Depends, Request

from app.config import Settings
from app.services.form_service import FormService
from app.stores.base import RecordStore


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> RecordStore:
    return request.app.state.store


def get_form_service(store: RecordStore = Depends(get_store)) -> FormService:
    return FormService(store)
