"""
Formloop — Form, completion and statistics orchestration.

Bridges the record store and the pure aggregation engine: fetches the
snapshot each view needs, stamps it with the current instant from the
injected clock, and hands it to ``app.services.aggregation``.  Ownership
checks for form edits live here so the routers stay thin.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import structlog

from app.schemas.form import FormCreate, FormWithStats
from app.schemas.stats import ActivityData, RecentActivity, UserStats
from app.schemas.user import UserCreate, UserResponse, UserWithStats
from app.services import aggregation
from app.stores.base import DuplicateRecordError, RecordStore
from app.stores.records import CompletionRecord, FormFilter, FormRecord, UserRecord
from app.utils.security import hash_password, verify_password

logger = structlog.get_logger("formloop.form_service")


# ──────────────────────────────────────────────────────────────────────────────
# Errors
# ──────────────────────────────────────────────────────────────────────────────

class FormloopError(Exception):
    """Base class for service-level failures the API maps to HTTP errors."""


class FormNotFoundError(FormloopError):
    pass


class UserNotFoundError(FormloopError):
    pass


class PermissionDeniedError(FormloopError):
    pass


class DuplicateUserError(FormloopError):
    pass


class InvalidCredentialsError(FormloopError):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FormService:
    """Form lifecycle, completion upserts and per-user statistics.

    Parameters
    ----------
    store:
        Any ``RecordStore`` adapter.
    clock:
        Zero-argument callable returning an aware ``datetime``.  Read once
        per operation so that every window in one response shares the same
        reference instant.
    """

    def __init__(
        self,
        store: RecordStore,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self._clock = clock or _utcnow

    def now(self) -> datetime:
        return self._clock()

    # ── Forms ─────────────────────────────────────────────────────────

    async def list_forms(
        self,
        filters: Optional[FormFilter] = None,
        viewer_id: Optional[uuid.UUID] = None,
    ) -> list[FormWithStats]:
        forms = await self.store.list_forms(filters)
        completions = (
            await self.store.list_completions(form_ids=[f.id for f in forms])
            if forms
            else []
        )

        by_form: dict[uuid.UUID, list[CompletionRecord]] = defaultdict(list)
        for completion in completions:
            by_form[completion.form_id].append(completion)

        now = self.now()
        logger.info(
            "list_forms",
            form_count=len(forms),
            viewer_id=str(viewer_id) if viewer_id else None,
        )
        return [
            aggregation.build_form_with_stats(form, by_form[form.id], viewer_id, now=now)
            for form in forms
        ]

    async def get_form(self, form_id: uuid.UUID) -> FormRecord:
        form = await self.store.get_form(form_id)
        if form is None:
            raise FormNotFoundError(f"Form {form_id} not found.")
        return form

    async def get_form_with_stats(
        self,
        form_id: uuid.UUID,
        viewer_id: Optional[uuid.UUID] = None,
    ) -> FormWithStats:
        form = await self.get_form(form_id)
        completions = await self.store.list_completions(form_id=form_id)
        return aggregation.build_form_with_stats(form, completions, viewer_id, now=self.now())

    async def create_form(self, payload: FormCreate) -> FormRecord:
        await self._require_user(payload.created_by)
        form = await self.store.create_form(
            title=payload.title,
            description=payload.description,
            url=payload.url,
            tags=payload.tags,
            created_by=payload.created_by,
            estimated_time=payload.estimated_time,
            created_at=self.now(),
        )
        logger.info("form_created", form_id=str(form.id), created_by=str(form.created_by))
        return form

    async def update_form(
        self,
        form_id: uuid.UUID,
        actor_id: uuid.UUID,
        changes: dict[str, Any],
    ) -> FormRecord:
        form = await self._require_owned_form(form_id, actor_id)
        if not changes:
            return form
        updated = await self.store.update_form(form_id, changes)
        if updated is None:
            raise FormNotFoundError(f"Form {form_id} not found.")
        logger.info("form_updated", form_id=str(form_id), updated_fields=sorted(changes))
        return updated

    async def delete_form(self, form_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        await self._require_owned_form(form_id, actor_id)
        await self.store.delete_form(form_id)
        logger.info("form_deleted", form_id=str(form_id))

    # ── Completions ───────────────────────────────────────────────────

    async def mark_form_as_completed(
        self,
        form_id: uuid.UUID,
        user_id: uuid.UUID,
        rating: Optional[int] = None,
        feedback: Optional[str] = None,
    ) -> CompletionRecord:
        """Record (or refresh) ``user_id``'s completion of ``form_id``.

        Repeat calls overwrite rating, feedback and timestamp on the single
        existing record.
        """
        await self.get_form(form_id)
        await self._require_user(user_id)
        completion = await self.store.upsert_completion(
            form_id,
            user_id,
            rating=rating,
            feedback=feedback,
            completed_at=self.now(),
        )
        logger.info(
            "mark_completed_complete",
            form_id=str(form_id),
            user_id=str(user_id),
            rating=rating,
        )
        return completion

    # ── Statistics ────────────────────────────────────────────────────

    async def get_user_stats(self, user_id: uuid.UUID) -> UserStats:
        await self._require_user(user_id)
        return await self._build_user_stats(user_id)

    async def get_activity_data(
        self,
        user_id: uuid.UUID,
        days: int = aggregation.DEFAULT_ACTIVITY_DAYS,
    ) -> list[ActivityData]:
        await self._require_user(user_id)
        completions = await self.store.list_completions(user_id=user_id)
        return aggregation.build_activity_histogram(completions, now=self.now(), days=days)

    async def get_recent_activities(
        self,
        user_id: uuid.UUID,
        limit: int = aggregation.DEFAULT_RECENT_LIMIT,
    ) -> list[RecentActivity]:
        await self._require_user(user_id)
        completions = await self.store.list_completions(user_id=user_id)
        posted = await self.store.list_forms(FormFilter(user_id=user_id))
        referenced = await self.store.get_forms({c.form_id for c in completions})
        lookup = {form.id: form for form in referenced}
        return aggregation.merge_recent_activity(completions, posted, lookup, limit=limit)

    async def get_user_with_stats(self, user_id: uuid.UUID) -> UserWithStats:
        user = await self._require_user(user_id)
        stats = await self._build_user_stats(user_id)
        return UserWithStats(
            **UserResponse.model_validate(user).model_dump(),
            stats=stats,
        )

    async def _build_user_stats(self, user_id: uuid.UUID) -> UserStats:
        completions = await self.store.list_completions(user_id=user_id)
        owned = await self.store.list_forms(FormFilter(user_id=user_id))
        received = (
            await self.store.list_completions(form_ids=[f.id for f in owned])
            if owned
            else []
        )
        return aggregation.build_user_stats(completions, owned, received, now=self.now())

    # ── Users ─────────────────────────────────────────────────────────

    async def register_user(self, payload: UserCreate) -> UserRecord:
        log = logger.bind(username=payload.username)
        if await self.store.get_user_by_username(payload.username) is not None:
            log.warning("register_duplicate_username")
            raise DuplicateUserError("Username already exists.")
        if await self.store.get_user_by_email(payload.email) is not None:
            log.warning("register_duplicate_email")
            raise DuplicateUserError("Email already registered.")

        try:
            user = await self.store.create_user(
                username=payload.username,
                email=payload.email,
                password=hash_password(payload.password),
                full_name=payload.full_name,
            )
        except DuplicateRecordError as exc:
            raise DuplicateUserError(str(exc)) from exc

        log.info("register_complete", user_id=str(user.id))
        return user

    async def authenticate(self, username: str, password: str) -> UserRecord:
        user = await self.store.get_user_by_username(username)
        if user is None or not verify_password(password, user.password):
            logger.warning("authenticate_failed", username=username)
            raise InvalidCredentialsError("Invalid username or password.")
        return user

    # ── Helpers ───────────────────────────────────────────────────────

    async def _require_user(self, user_id: uuid.UUID) -> UserRecord:
        user = await self.store.get_user(user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found.")
        return user

    async def _require_owned_form(
        self, form_id: uuid.UUID, actor_id: uuid.UUID
    ) -> FormRecord:
        form = await self.get_form(form_id)
        if form.created_by != actor_id:
            logger.warning(
                "form_permission_denied",
                form_id=str(form_id),
                actor_id=str(actor_id),
            )
            raise PermissionDeniedError("Only the form's owner may modify it.")
        return form
