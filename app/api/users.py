"""
Formloop — Users API

Registration, credential check, profile with stats, and the per-user
statistics feeds (window counts, daily histogram, recent activity).
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.deps import get_app_settings, get_form_service
from app.config import Settings
from app.schemas.stats import ActivityData, RecentActivity, UserStats
from app.schemas.user import UserCreate, UserLogin, UserResponse, UserWithStats
from app.services.form_service import (
    DuplicateUserError,
    FormService,
    InvalidCredentialsError,
    UserNotFoundError,
)
from app.stores.records import UserRecord

logger = structlog.get_logger("formloop.api.users")

router = APIRouter()


def _not_found(exc: UserNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


# ──────────────────────────────────────────────────────────────────────────────
# POST / — Register a user
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def create_user(
    payload: UserCreate,
    service: FormService = Depends(get_form_service),
) -> UserRecord:
    try:
        return await service.register_user(payload)
    except DuplicateUserError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


# ──────────────────────────────────────────────────────────────────────────────
# POST /login — Verify credentials
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/login",
    response_model=UserResponse,
    summary="Verify a username and password",
)
async def login(
    payload: UserLogin,
    service: FormService = Depends(get_form_service),
) -> UserRecord:
    try:
        return await service.authenticate(payload.username, payload.password)
    except InvalidCredentialsError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))


# ──────────────────────────────────────────────────────────────────────────────
# GET /{user_id} — Profile with stats
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/{user_id}",
    response_model=UserWithStats,
    summary="Get a user profile with statistics",
)
async def get_user(
    user_id: uuid.UUID,
    service: FormService = Depends(get_form_service),
) -> UserWithStats:
    try:
        return await service.get_user_with_stats(user_id)
    except UserNotFoundError as exc:
        raise _not_found(exc)


# ──────────────────────────────────────────────────────────────────────────────
# GET /{user_id}/stats — Window counts and ratings
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/{user_id}/stats",
    response_model=UserStats,
    summary="Get completion and rating statistics",
)
async def get_user_stats(
    user_id: uuid.UUID,
    service: FormService = Depends(get_form_service),
) -> UserStats:
    try:
        return await service.get_user_stats(user_id)
    except UserNotFoundError as exc:
        raise _not_found(exc)


# ──────────────────────────────────────────────────────────────────────────────
# GET /{user_id}/activity — Daily completion histogram
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/{user_id}/activity",
    response_model=list[ActivityData],
    summary="Get completions per day",
)
async def get_activity(
    user_id: uuid.UUID,
    days: Optional[int] = Query(
        None,
        ge=0,
        le=3650,
        description="Trailing window length in days",
    ),
    settings: Settings = Depends(get_app_settings),
    service: FormService = Depends(get_form_service),
) -> list[ActivityData]:
    if days is None:
        days = settings.DEFAULT_ACTIVITY_DAYS
    logger.info("get_activity", user_id=str(user_id), days=days)
    try:
        return await service.get_activity_data(user_id, days=days)
    except UserNotFoundError as exc:
        raise _not_found(exc)


# ──────────────────────────────────────────────────────────────────────────────
# GET /{user_id}/activities — Recent activity feed
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/{user_id}/activities",
    response_model=list[RecentActivity],
    summary="Get recent postings and completions",
)
async def get_recent_activities(
    user_id: uuid.UUID,
    limit: Optional[int] = Query(
        None,
        ge=0,
        le=100,
        description="Maximum number of entries",
    ),
    settings: Settings = Depends(get_app_settings),
    service: FormService = Depends(get_form_service),
) -> list[RecentActivity]:
    if limit is None:
        limit = settings.DEFAULT_RECENT_LIMIT
    try:
        return await service.get_recent_activities(user_id, limit=limit)
    except UserNotFoundError as exc:
        raise _not_found(exc)
