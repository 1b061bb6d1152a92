"""
Formloop — Plain domain records handed between record stores and the
aggregation engine.

Stores translate their native rows (ORM objects, dict entries) into these
frozen dataclasses so that the engine never holds a database session and
every backend produces identical inputs.  All timestamps are timezone-aware
UTC datetimes.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC.

    SQLite hands back naive values for ``DateTime(timezone=True)`` columns;
    everything this service writes is UTC, so a naive value is read as UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class UserRecord:
    id: uuid.UUID
    username: str
    email: str
    password: str
    full_name: str
    created_at: datetime


@dataclass(frozen=True)
class FormRecord:
    id: uuid.UUID
    title: str
    description: str
    url: str
    created_by: uuid.UUID
    estimated_time: int
    created_at: datetime
    tags: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class CompletionRecord:
    id: uuid.UUID
    form_id: uuid.UUID
    user_id: uuid.UUID
    completed_at: datetime
    rating: Optional[int] = None
    feedback: Optional[str] = None


@dataclass
class FormFilter:
    """Listing filter.  Dimensions combine with AND; ``tags`` match with OR."""

    tags: Optional[list[str]] = None
    search: Optional[str] = None
    user_id: Optional[uuid.UUID] = None


UPDATABLE_FORM_FIELDS: frozenset[str] = frozenset(
    {"title", "description", "url", "tags", "estimated_time"}
)
