"""
Formloop — Forms API

Endpoints for listing, creating, editing and deleting forms, and for
marking a form as completed.  Listing responses carry aggregated rating,
review count and status for each form.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from app.api.deps import get_form_service
from app.schemas.completion import CompletionCreate, CompletionResponse
from app.schemas.form import FormCreate, FormResponse, FormUpdate, FormWithStats
from app.services.form_service import (
    FormNotFoundError,
    FormService,
    PermissionDeniedError,
    UserNotFoundError,
)
from app.stores.records import CompletionRecord, FormFilter, FormRecord

logger = structlog.get_logger("formloop.api.forms")

router = APIRouter()


def _parse_tags(raw: Optional[str]) -> Optional[list[str]]:
    if not raw:
        return None
    tags = [t.strip() for t in raw.split(",") if t.strip()]
    return tags or None


# ──────────────────────────────────────────────────────────────────────────────
# GET / — List forms with stats
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/",
    response_model=list[FormWithStats],
    summary="List forms with aggregated stats",
)
async def list_forms(
    tags: Optional[str] = Query(None, description="Comma-separated tags; any match"),
    search: Optional[str] = Query(None, description="Substring of title or description"),
    user_id: Optional[uuid.UUID] = Query(None, description="Only forms posted by this user"),
    viewer_id: Optional[uuid.UUID] = Query(None, description="Compute completion status for this user"),
    service: FormService = Depends(get_form_service),
) -> list[FormWithStats]:
    """Return forms matching every supplied filter, newest first."""
    filters = FormFilter(tags=_parse_tags(tags), search=search, user_id=user_id)
    return await service.list_forms(filters, viewer_id=viewer_id)


# ──────────────────────────────────────────────────────────────────────────────
# GET /{form_id} — Single form with stats
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/{form_id}",
    response_model=FormWithStats,
    summary="Get a form by ID",
)
async def get_form(
    form_id: uuid.UUID,
    viewer_id: Optional[uuid.UUID] = Query(None),
    service: FormService = Depends(get_form_service),
) -> FormWithStats:
    try:
        return await service.get_form_with_stats(form_id, viewer_id=viewer_id)
    except FormNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


# ──────────────────────────────────────────────────────────────────────────────
# POST / — Create a form
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/",
    response_model=FormResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Post a new form",
)
async def create_form(
    payload: FormCreate,
    service: FormService = Depends(get_form_service),
) -> FormRecord:
    log = logger.bind(created_by=str(payload.created_by))
    log.info("create_form_start")
    try:
        return await service.create_form(payload)
    except UserNotFoundError as exc:
        log.warning("create_form_unknown_user")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


# ──────────────────────────────────────────────────────────────────────────────
# PUT /{form_id} — Edit a form (owner only)
# ──────────────────────────────────────────────────────────────────────────────

@router.put(
    "/{form_id}",
    response_model=FormResponse,
    summary="Update a form",
)
async def update_form(
    form_id: uuid.UUID,
    payload: FormUpdate,
    user_id: uuid.UUID = Query(..., description="Acting user; must own the form"),
    service: FormService = Depends(get_form_service),
) -> FormRecord:
    """Apply the fields present in the request body."""
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    try:
        return await service.update_form(form_id, user_id, changes)
    except FormNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except PermissionDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))


# ──────────────────────────────────────────────────────────────────────────────
# DELETE /{form_id} — Delete a form (owner only)
# ──────────────────────────────────────────────────────────────────────────────

@router.delete(
    "/{form_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a form",
)
async def delete_form(
    form_id: uuid.UUID,
    user_id: uuid.UUID = Query(..., description="Acting user; must own the form"),
    service: FormService = Depends(get_form_service),
) -> Response:
    try:
        await service.delete_form(form_id, user_id)
    except FormNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except PermissionDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ──────────────────────────────────────────────────────────────────────────────
# POST /{form_id}/complete — Mark a form as completed
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/{form_id}/complete",
    response_model=CompletionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Mark a form as completed",
)
async def complete_form(
    form_id: uuid.UUID,
    payload: CompletionCreate,
    service: FormService = Depends(get_form_service),
) -> CompletionRecord:
    """Record a completion with optional rating (1-5) and feedback.

    Completing the same form again updates the existing record.
    """
    log = logger.bind(form_id=str(form_id), user_id=str(payload.user_id))
    log.info("complete_form_start")
    try:
        return await service.mark_form_as_completed(
            form_id,
            payload.user_id,
            rating=payload.rating,
            feedback=payload.feedback,
        )
    except (FormNotFoundError, UserNotFoundError) as exc:
        log.warning("complete_form_not_found", error=str(exc))
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
