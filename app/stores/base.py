"""
Formloop — Record store contract.

The aggregation engine and ``FormService`` depend only on this interface.
Each persistence technology is a thin adapter implementing it; see
``memory.py`` and ``sql.py``.
"""

from __future__ import annotations

import abc
import uuid
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from app.stores.records import CompletionRecord, FormFilter, FormRecord, UserRecord


class StoreError(Exception):
    """Base class for record store failures."""


class DuplicateRecordError(StoreError):
    """A uniqueness constraint (username, email) rejected a write."""


class RecordStore(abc.ABC):
    """Async read/write contract over users, forms and completions."""

    backend_name: str = "abstract"

    # ── Forms ─────────────────────────────────────────────────────────

    @abc.abstractmethod
    async def list_forms(self, filters: Optional[FormFilter] = None) -> list[FormRecord]:
        """Return matching forms, newest first."""

    @abc.abstractmethod
    async def get_form(self, form_id: uuid.UUID) -> Optional[FormRecord]:
        ...

    @abc.abstractmethod
    async def get_forms(self, form_ids: Iterable[uuid.UUID]) -> list[FormRecord]:
        """Return the forms that still exist among ``form_ids``."""

    @abc.abstractmethod
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
        ...

    @abc.abstractmethod
    async def update_form(
        self, form_id: uuid.UUID, changes: Mapping[str, Any]
    ) -> Optional[FormRecord]:
        """Apply ``changes`` (restricted to ``UPDATABLE_FORM_FIELDS``)."""

    @abc.abstractmethod
    async def delete_form(self, form_id: uuid.UUID) -> bool:
        ...

    # ── Completions ───────────────────────────────────────────────────

    @abc.abstractmethod
    async def list_completions(
        self,
        form_id: Optional[uuid.UUID] = None,
        user_id: Optional[uuid.UUID] = None,
        form_ids: Optional[Iterable[uuid.UUID]] = None,
    ) -> list[CompletionRecord]:
        ...

    @abc.abstractmethod
    async def get_completion(
        self, form_id: uuid.UUID, user_id: uuid.UUID
    ) -> Optional[CompletionRecord]:
        ...

    @abc.abstractmethod
    async def upsert_completion(
        self,
        form_id: uuid.UUID,
        user_id: uuid.UUID,
        rating: Optional[int] = None,
        feedback: Optional[str] = None,
        completed_at: Optional[datetime] = None,
    ) -> CompletionRecord:
        """Insert or overwrite the single completion for (form_id, user_id).

        Must be atomic: concurrent calls for one pair leave exactly one
        record, holding the last writer's rating, feedback and timestamp.
        """

    # ── Users ─────────────────────────────────────────────────────────

    @abc.abstractmethod
    async def create_user(
        self,
        *,
        username: str,
        email: str,
        password: str,
        full_name: str,
    ) -> UserRecord:
        """Raises ``DuplicateRecordError`` if the username or email is taken."""

    @abc.abstractmethod
    async def get_user(self, user_id: uuid.UUID) -> Optional[UserRecord]:
        ...

    @abc.abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        ...

    @abc.abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        ...

    # ── Lifecycle ─────────────────────────────────────────────────────

    async def ping(self) -> None:
        """Raise if the backing store is unreachable."""

    async def close(self) -> None:
        """Release connections or other resources."""
