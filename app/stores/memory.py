"""
Formloop — In-memory record store.

Dict-backed adapter for development, demos and tests.  Reads work on the
live dicts; every write goes through one ``asyncio.Lock`` so that the
(form_id, user_id) upsert is a single atomic step on the event loop.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional

import structlog

from app.services.aggregation import filter_forms
from app.stores.base import DuplicateRecordError, RecordStore
from app.stores.records import (
    UPDATABLE_FORM_FIELDS,
    CompletionRecord,
    FormFilter,
    FormRecord,
    UserRecord,
    ensure_utc,
)

logger = structlog.get_logger("formloop.stores.memory")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MemoryRecordStore(RecordStore):
    backend_name = "memory"

    def __init__(self) -> None:
        self._users: dict[uuid.UUID, UserRecord] = {}
        self._forms: dict[uuid.UUID, FormRecord] = {}
        self._completions: dict[tuple[uuid.UUID, uuid.UUID], CompletionRecord] = {}
        self._write_lock = asyncio.Lock()

    # ── Forms ─────────────────────────────────────────────────────────

    async def list_forms(self, filters: Optional[FormFilter] = None) -> list[FormRecord]:
        forms = filter_forms(self._forms.values(), filters)
        return sorted(forms, key=lambda f: f.created_at, reverse=True)

    async def get_form(self, form_id: uuid.UUID) -> Optional[FormRecord]:
        return self._forms.get(form_id)

    async def get_forms(self, form_ids: Iterable[uuid.UUID]) -> list[FormRecord]:
        return [self._forms[fid] for fid in set(form_ids) if fid in self._forms]

    async def create_form(
        self,
        *,
        title: str,
        description: str,
        url: str,
        tags: list[str],
        created_by: uuid.UUID,
        estimated_time: int,
        created_at: Optional[datetime] = None,
    ) -> FormRecord:
        form = FormRecord(
            id=uuid.uuid4(),
            title=title,
            description=description,
            url=url,
            tags=list(tags),
            created_by=created_by,
            estimated_time=estimated_time,
            created_at=ensure_utc(created_at) if created_at else _utcnow(),
        )
        async with self._write_lock:
            self._forms[form.id] = form
        logger.debug("form_created", form_id=str(form.id))
        return form

    async def update_form(
        self, form_id: uuid.UUID, changes: Mapping[str, Any]
    ) -> Optional[FormRecord]:
        allowed = {k: v for k, v in changes.items() if k in UPDATABLE_FORM_FIELDS}
        async with self._write_lock:
            existing = self._forms.get(form_id)
            if existing is None:
                return None
            updated = replace(existing, **allowed)
            self._forms[form_id] = updated
        return updated

    async def delete_form(self, form_id: uuid.UUID) -> bool:
        async with self._write_lock:
            return self._forms.pop(form_id, None) is not None

    # ── Completions ───────────────────────────────────────────────────

    async def list_completions(
        self,
        form_id: Optional[uuid.UUID] = None,
        user_id: Optional[uuid.UUID] = None,
        form_ids: Optional[Iterable[uuid.UUID]] = None,
    ) -> list[CompletionRecord]:
        wanted = set(form_ids) if form_ids is not None else None
        return [
            c
            for c in self._completions.values()
            if (form_id is None or c.form_id == form_id)
            and (user_id is None or c.user_id == user_id)
            and (wanted is None or c.form_id in wanted)
        ]

    async def get_completion(
        self, form_id: uuid.UUID, user_id: uuid.UUID
    ) -> Optional[CompletionRecord]:
        return self._completions.get((form_id, user_id))

    async def upsert_completion(
        self,
        form_id: uuid.UUID,
        user_id: uuid.UUID,
        rating: Optional[int] = None,
        feedback: Optional[str] = None,
        completed_at: Optional[datetime] = None,
    ) -> CompletionRecord:
        stamp = ensure_utc(completed_at) if completed_at else _utcnow()
        key = (form_id, user_id)
        async with self._write_lock:
            existing = self._completions.get(key)
            if existing is not None:
                record = replace(
                    existing, rating=rating, feedback=feedback, completed_at=stamp
                )
            else:
                record = CompletionRecord(
                    id=uuid.uuid4(),
                    form_id=form_id,
                    user_id=user_id,
                    rating=rating,
                    feedback=feedback,
                    completed_at=stamp,
                )
            self._completions[key] = record
        return record

    # ── Users ─────────────────────────────────────────────────────────

    async def create_user(
        self,
        *,
        username: str,
        email: str,
        password: str,
        full_name: str,
    ) -> UserRecord:
        async with self._write_lock:
            for user in self._users.values():
                if user.username == username or user.email == email:
                    raise DuplicateRecordError("username or email already registered")
            record = UserRecord(
                id=uuid.uuid4(),
                username=username,
                email=email,
                password=password,
                full_name=full_name,
                created_at=_utcnow(),
            )
            self._users[record.id] = record
        return record

    async def get_user(self, user_id: uuid.UUID) -> Optional[UserRecord]:
        return self._users.get(user_id)

    async def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        return next((u for u in self._users.values() if u.username == username), None)

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        return next((u for u in self._users.values() if u.email == email), None)
