"""
Formloop — Statistics and activity aggregation engine.

Pure functions over snapshots of forms and completions.  Nothing here does
I/O or reads the wall clock: every time-windowed computation takes an
explicit ``now`` so callers (and tests) control the reference instant.

Derived views:
  FormWithStats   — form + average rating, review count, viewer completion
                    flag and status badge.
  UserStats       — completions in total / last 7 / last 30 days, forms
                    posted, mean rating received across owned forms.
  ActivityData    — one entry per UTC calendar day over a trailing window,
                    zero-count days included.
  RecentActivity  — merged "posted" + "completed" feed, newest first.

Status priority (first match wins):
  1. completed — the viewer has a completion on the form
  2. popular   — strictly more than 20 completions
  3. new       — created less than 7 days before ``now``
  4. none
A busy form younger than a week is therefore "popular", not "new".

Inputs are assumed to satisfy the one-completion-per-(form, user) invariant;
the engine does not re-validate it.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict
from datetime import datetime, timedelta
from typing import Iterable, Mapping, NamedTuple, Optional, Sequence

import structlog

from app.schemas.form import FormStatus, FormWithStats
from app.schemas.stats import ActivityData, RecentActivity, UserStats
from app.stores.records import CompletionRecord, FormFilter, FormRecord, ensure_utc

logger = structlog.get_logger(__name__)

# ──────────────────────────────────────────────────────────────────────────────
# Constants
# ──────────────────────────────────────────────────────────────────────────────

POPULAR_THRESHOLD = 20  # completions; strictly greater-than
NEW_FORM_WINDOW = timedelta(days=7)
WINDOW_7_DAYS = timedelta(days=7)
WINDOW_30_DAYS = timedelta(days=30)
DEFAULT_ACTIVITY_DAYS = 90
DEFAULT_RECENT_LIMIT = 10
UNKNOWN_FORM_TITLE = "Unknown Form"


class RatingSummary(NamedTuple):
    rating: float
    review_count: int


class WindowCounts(NamedTuple):
    total: int
    last_7_days: int
    last_30_days: int


# ──────────────────────────────────────────────────────────────────────────────
# Rating aggregation
# ──────────────────────────────────────────────────────────────────────────────

def aggregate_ratings(completions: Iterable[CompletionRecord]) -> RatingSummary:
    """Mean of the non-null ratings and how many there were.

    Unrated completions are skipped.  With no ratings the mean is ``0.0``,
    never ``None``.  Every rating is weighted equally, so passing the
    completions of several forms yields the pooled mean, not a mean of
    per-form means.
    """
    ratings = [c.rating for c in completions if c.rating is not None]
    if not ratings:
        return RatingSummary(rating=0.0, review_count=0)
    return RatingSummary(rating=sum(ratings) / len(ratings), review_count=len(ratings))


# ──────────────────────────────────────────────────────────────────────────────
# Status classification
# ──────────────────────────────────────────────────────────────────────────────

def classify_status(
    form: FormRecord,
    completions: Sequence[CompletionRecord],
    viewer_id: Optional[uuid.UUID] = None,
    *,
    now: datetime,
) -> Optional[FormStatus]:
    """Badge for ``form`` given all of its completions."""
    if viewer_id is not None and any(c.user_id == viewer_id for c in completions):
        return FormStatus.COMPLETED
    if len(completions) > POPULAR_THRESHOLD:
        return FormStatus.POPULAR
    if now - form.created_at < NEW_FORM_WINDOW:
        return FormStatus.NEW
    return None


def build_form_with_stats(
    form: FormRecord,
    completions: Sequence[CompletionRecord],
    viewer_id: Optional[uuid.UUID] = None,
    *,
    now: datetime,
) -> FormWithStats:
    summary = aggregate_ratings(completions)
    is_completed = (
        any(c.user_id == viewer_id for c in completions)
        if viewer_id is not None
        else None
    )
    return FormWithStats(
        **asdict(form),
        rating=summary.rating,
        review_count=summary.review_count,
        is_completed=is_completed,
        status=classify_status(form, completions, viewer_id, now=now),
    )


# ──────────────────────────────────────────────────────────────────────────────
# Listing filter
# ──────────────────────────────────────────────────────────────────────────────

def filter_forms(
    forms: Iterable[FormRecord],
    filters: Optional[FormFilter] = None,
) -> list[FormRecord]:
    """Apply tag (any-of), search (title/description substring, case-insensitive)
    and owner filters.  Dimensions combine with AND; empty dimensions are ignored.
    """
    if filters is None:
        return list(forms)

    wanted_tags = set(filters.tags or ())
    needle = (filters.search or "").strip().lower()
    owner = filters.user_id

    def _matches(form: FormRecord) -> bool:
        if wanted_tags and wanted_tags.isdisjoint(form.tags):
            return False
        if needle and needle not in form.title.lower() and needle not in form.description.lower():
            return False
        if owner is not None and form.created_by != owner:
            return False
        return True

    return [form for form in forms if _matches(form)]


# ──────────────────────────────────────────────────────────────────────────────
# Time windows
# ──────────────────────────────────────────────────────────────────────────────

def count_completion_windows(
    completions: Sequence[CompletionRecord],
    *,
    now: datetime,
) -> WindowCounts:
    """Total plus trailing 7- and 30-day counts (``completed_at >= now - N``).

    The windows are independent counts, so the 7-day members are also in
    the 30-day figure.
    """
    since_7 = now - WINDOW_7_DAYS
    since_30 = now - WINDOW_30_DAYS
    return WindowCounts(
        total=len(completions),
        last_7_days=sum(1 for c in completions if c.completed_at >= since_7),
        last_30_days=sum(1 for c in completions if c.completed_at >= since_30),
    )


def build_user_stats(
    user_completions: Sequence[CompletionRecord],
    owned_forms: Sequence[FormRecord],
    received_completions: Iterable[CompletionRecord],
    *,
    now: datetime,
) -> UserStats:
    """Assemble ``UserStats``.

    ``received_completions`` are completions left by anyone on the user's
    forms; entries for forms outside ``owned_forms`` are ignored.
    """
    windows = count_completion_windows(user_completions, now=now)
    owned_ids = {form.id for form in owned_forms}
    received = aggregate_ratings(c for c in received_completions if c.form_id in owned_ids)

    logger.debug(
        "user_stats_built",
        total=windows.total,
        forms_posted=len(owned_forms),
        ratings_received=received.review_count,
    )
    return UserStats(
        total_filled=windows.total,
        last_7_days=windows.last_7_days,
        last_30_days=windows.last_30_days,
        forms_posted=len(owned_forms),
        avg_rating=received.rating,
    )


# ──────────────────────────────────────────────────────────────────────────────
# Daily histogram
# ──────────────────────────────────────────────────────────────────────────────

def build_activity_histogram(
    completions: Iterable[CompletionRecord],
    *,
    now: datetime,
    days: int = DEFAULT_ACTIVITY_DAYS,
) -> list[ActivityData]:
    """Completions per UTC calendar day from ``now - days`` through ``now``.

    Always returns ``days + 1`` entries in ascending date order with zero
    entries for quiet days.  Completions outside the window are dropped.
    """
    if days < 0:
        raise ValueError(f"days must be non-negative, got {days}")

    today = ensure_utc(now).date()
    start = today - timedelta(days=days)
    buckets: dict[str, int] = {
        (start + timedelta(days=offset)).isoformat(): 0 for offset in range(days + 1)
    }

    for completion in completions:
        key = ensure_utc(completion.completed_at).date().isoformat()
        if key in buckets:
            buckets[key] += 1

    # ISO dates sort lexicographically in calendar order.
    return [ActivityData(date=day, count=count) for day, count in sorted(buckets.items())]


# ──────────────────────────────────────────────────────────────────────────────
# Recent activity feed
# ──────────────────────────────────────────────────────────────────────────────

def merge_recent_activity(
    completions: Iterable[CompletionRecord],
    posted_forms: Iterable[FormRecord],
    form_lookup: Mapping[uuid.UUID, FormRecord],
    *,
    limit: int = DEFAULT_RECENT_LIMIT,
) -> list[RecentActivity]:
    """Merge a user's completions and postings into one newest-first feed.

    Each source is cut to its own newest ``limit`` entries *before* the
    merge, and the merged list is cut to ``limit`` again.  When one source
    dominates recent history the other can be under-sampled; callers rely
    on this exact two-stage behaviour.

    Completions whose form no longer resolves in ``form_lookup`` carry the
    ``UNKNOWN_FORM_TITLE`` placeholder.
    """
    if limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")

    recent_completions = sorted(completions, key=lambda c: c.completed_at, reverse=True)[:limit]
    recent_posts = sorted(posted_forms, key=lambda f: f.created_at, reverse=True)[:limit]

    completed_items: list[RecentActivity] = []
    for completion in recent_completions:
        form = form_lookup.get(completion.form_id)
        completed_items.append(
            RecentActivity(
                id=completion.id,
                form_id=completion.form_id,
                form_title=form.title if form is not None else UNKNOWN_FORM_TITLE,
                activity_type="completed",
                rating=completion.rating,
                feedback=completion.feedback,
                date=completion.completed_at,
            )
        )

    posted_items = [
        RecentActivity(
            id=form.id,
            form_id=form.id,
            form_title=form.title,
            activity_type="posted",
            date=form.created_at,
        )
        for form in recent_posts
    ]

    merged = sorted(completed_items + posted_items, key=lambda a: a.date, reverse=True)
    return merged[:limit]
