"""
Formloop — SQLAlchemy record store.

Async adapter over PostgreSQL (asyncpg) or SQLite (aiosqlite).  Each call
opens its own short-lived ``AsyncSession`` from the factory built around the
injected engine and converts ORM rows into plain records before the session
closes.

The completion upsert is a single ``INSERT ... ON CONFLICT (form_id, user_id)
DO UPDATE`` statement backed by the ``uq_completion_form_user`` constraint, so
concurrent completions by the same user collapse to one row in the database
itself.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional

import structlog
from sqlalchemy import select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine

from app.database import build_session_factory
from app.models.form import Completion, Form
from app.models.user import User
from app.services.aggregation import filter_forms
from app.stores.base import DuplicateRecordError, RecordStore, StoreError
from app.stores.records import (
    UPDATABLE_FORM_FIELDS,
    CompletionRecord,
    FormFilter,
    FormRecord,
    UserRecord,
    ensure_utc,
)

logger = structlog.get_logger("formloop.stores.sql")

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


# ──────────────────────────────────────────────────────────────────────────────
# Row → record conversion
# ──────────────────────────────────────────────────────────────────────────────

def _form_record(row: Form) -> FormRecord:
    return FormRecord(
        id=row.id,
        title=row.title,
        description=row.description,
        url=row.url,
        tags=list(row.tags or []),
        created_by=row.created_by,
        estimated_time=row.estimated_time,
        created_at=ensure_utc(row.created_at),
    )


def _completion_record(row: Completion) -> CompletionRecord:
    return CompletionRecord(
        id=row.id,
        form_id=row.form_id,
        user_id=row.user_id,
        rating=row.rating,
        feedback=row.feedback,
        completed_at=ensure_utc(row.completed_at),
    )


def _user_record(row: User) -> UserRecord:
    return UserRecord(
        id=row.id,
        username=row.username,
        email=row.email,
        password=row.password,
        full_name=row.full_name,
        created_at=ensure_utc(row.created_at),
    )


class SqlRecordStore(RecordStore):
    backend_name = "sql"

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._session_factory = build_session_factory(engine)

        dialect = engine.dialect.name
        if dialect not in _UPSERT_INSERTS:
            raise StoreError(f"Unsupported database dialect for upsert: {dialect}")
        self._insert = _UPSERT_INSERTS[dialect]

    # ── Forms ─────────────────────────────────────────────────────────

    async def list_forms(self, filters: Optional[FormFilter] = None) -> list[FormRecord]:
        stmt = select(Form).order_by(Form.created_at.desc())
        if filters is not None and filters.user_id is not None:
            stmt = stmt.where(Form.created_by == filters.user_id)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            forms = [_form_record(row) for row in result.scalars().all()]

        # Tag and search matching stay in Python so every backend agrees on
        # case folding and any-of tag semantics.
        return filter_forms(forms, filters)

    async def get_form(self, form_id: uuid.UUID) -> Optional[FormRecord]:
        async with self._session_factory() as session:
            row = await session.get(Form, form_id)
            return _form_record(row) if row is not None else None

    async def get_forms(self, form_ids: Iterable[uuid.UUID]) -> list[FormRecord]:
        ids = list(set(form_ids))
        if not ids:
            return []
        async with self._session_factory() as session:
            result = await session.execute(select(Form).where(Form.id.in_(ids)))
            return [_form_record(row) for row in result.scalars().all()]

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
        row = Form(
            title=title,
            description=description,
            url=url,
            tags=list(tags),
            created_by=created_by,
            estimated_time=estimated_time,
            created_at=created_at or datetime.now(timezone.utc),
        )
        async with self._session_factory() as session:
            session.add(row)
            await session.commit()
            logger.info("form_inserted", form_id=str(row.id))
            return _form_record(row)

    async def update_form(
        self, form_id: uuid.UUID, changes: Mapping[str, Any]
    ) -> Optional[FormRecord]:
        async with self._session_factory() as session:
            row = await session.get(Form, form_id)
            if row is None:
                return None
            for field, value in changes.items():
                if field in UPDATABLE_FORM_FIELDS:
                    setattr(row, field, list(value) if field == "tags" else value)
            await session.commit()
            return _form_record(row)

    async def delete_form(self, form_id: uuid.UUID) -> bool:
        async with self._session_factory() as session:
            row = await session.get(Form, form_id)
            if row is None:
                return False
            await session.delete(row)
            await session.commit()
            return True

    # ── Completions ───────────────────────────────────────────────────

    async def list_completions(
        self,
        form_id: Optional[uuid.UUID] = None,
        user_id: Optional[uuid.UUID] = None,
        form_ids: Optional[Iterable[uuid.UUID]] = None,
    ) -> list[CompletionRecord]:
        stmt = select(Completion)
        if form_id is not None:
            stmt = stmt.where(Completion.form_id == form_id)
        if user_id is not None:
            stmt = stmt.where(Completion.user_id == user_id)
        if form_ids is not None:
            ids = list(set(form_ids))
            if not ids:
                return []
            stmt = stmt.where(Completion.form_id.in_(ids))

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [_completion_record(row) for row in result.scalars().all()]

    async def get_completion(
        self, form_id: uuid.UUID, user_id: uuid.UUID
    ) -> Optional[CompletionRecord]:
        stmt = select(Completion).where(
            Completion.form_id == form_id, Completion.user_id == user_id
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
            return _completion_record(row) if row is not None else None

    async def upsert_completion(
        self,
        form_id: uuid.UUID,
        user_id: uuid.UUID,
        rating: Optional[int] = None,
        feedback: Optional[str] = None,
        completed_at: Optional[datetime] = None,
    ) -> CompletionRecord:
        stmt = self._insert(Completion).values(
            id=uuid.uuid4(),
            form_id=form_id,
            user_id=user_id,
            rating=rating,
            feedback=feedback,
            completed_at=completed_at or datetime.now(timezone.utc),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Completion.form_id, Completion.user_id],
            set_={
                "rating": stmt.excluded.rating,
                "feedback": stmt.excluded.feedback,
                "completed_at": stmt.excluded.completed_at,
            },
        ).returning(Completion)

        async with self._session_factory() as session:
            result = await session.scalars(
                stmt, execution_options={"populate_existing": True}
            )
            row = result.one()
            record = _completion_record(row)
            await session.commit()

        logger.info(
            "completion_upserted",
            form_id=str(form_id),
            user_id=str(user_id),
            completion_id=str(record.id),
        )
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
        row = User(
            username=username,
            email=email,
            password=password,
            full_name=full_name,
            created_at=datetime.now(timezone.utc),
        )
        async with self._session_factory() as session:
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateRecordError("username or email already registered") from exc
            return _user_record(row)

    async def get_user(self, user_id: uuid.UUID) -> Optional[UserRecord]:
        async with self._session_factory() as session:
            row = await session.get(User, user_id)
            return _user_record(row) if row is not None else None

    async def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        return await self._get_user_where(User.username == username)

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        return await self._get_user_where(User.email == email)

    async def _get_user_where(self, clause) -> Optional[UserRecord]:
        async with self._session_factory() as session:
            result = await session.execute(select(User).where(clause))
            row = result.scalar_one_or_none()
            return _user_record(row) if row is not None else None

    # ── Lifecycle ─────────────────────────────────────────────────────

    async def ping(self) -> None:
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def close(self) -> None:
        await self._engine.dispose()
        logger.info("database_pool_closed")
