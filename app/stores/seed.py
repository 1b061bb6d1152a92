"""
Formloop — Demo data.

One demo account (``demo`` / ``password``) and three sample forms posted 7,
3 and 0 days ago.  The oldest sits exactly on the 7-day boundary and so
has already lost the "new" badge.  Seeding is idempotent.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog

from app.stores.base import RecordStore
from app.stores.records import FormFilter, UserRecord
from app.utils.security import hash_password

logger = structlog.get_logger("formloop.stores.seed")

DEMO_USER = {
    "username": "demo",
    "email": "demo@example.com",
    "password": "password",
    "full_name": "Demo User",
}

SAMPLE_FORMS = [
    {
        "title": "Student Feedback Survey",
        "description": (
            "Help us improve our courses by providing your feedback on your "
            "learning experience."
        ),
        "url": "https://docs.google.com/forms/d/e/1FAIpQLSfCxcEbZhKj4-Cxz9N3X4Q2g1KZ1RJZ9n5_OTRnHMUyHnD2Mw/viewform",
        "tags": ["Academic", "Student Feedback", "Education"],
        "estimated_time": 5,
        "age_days": 7,
    },
    {
        "title": "Product User Experience Survey",
        "description": (
            "Share your experience with our product to help us enhance user "
            "satisfaction."
        ),
        "url": "https://docs.google.com/forms/d/e/1FAIpQLSdBq8Bh8NQ-9zzW2QiGXgmTSXFL_81ZTcWLrS9URhO8o_dY2g/viewform",
        "tags": ["Product Testing", "User Experience", "Market Research"],
        "estimated_time": 8,
        "age_days": 3,
    },
    {
        "title": "Health & Wellness Assessment",
        "description": (
            "Complete this survey to help us understand your health and "
            "wellness needs better."
        ),
        "url": "https://docs.google.com/forms/d/e/1FAIpQLSeZtWyK-wQYQpriN36ZnFoCqOsJ2GjkWG4JMx0kXJFtM0Z_Uw/viewform",
        "tags": ["Health & Wellness", "Personal", "Lifestyle"],
        "estimated_time": 10,
        "age_days": 0,
    },
]


async def seed_demo_data(
    store: RecordStore,
    now: Optional[datetime] = None,
) -> UserRecord:
    """Create the demo user and sample forms unless they already exist."""
    now = now or datetime.now(timezone.utc)

    user = await store.get_user_by_username(DEMO_USER["username"])
    if user is None:
        user = await store.create_user(
            username=DEMO_USER["username"],
            email=DEMO_USER["email"],
            password=hash_password(DEMO_USER["password"]),
            full_name=DEMO_USER["full_name"],
        )
        logger.info("demo_user_created", user_id=str(user.id))
    else:
        logger.info("demo_user_exists", user_id=str(user.id))

    existing_titles = {
        form.title for form in await store.list_forms(FormFilter(user_id=user.id))
    }
    for sample in SAMPLE_FORMS:
        if sample["title"] in existing_titles:
            continue
        await store.create_form(
            title=sample["title"],
            description=sample["description"],
            url=sample["url"],
            tags=list(sample["tags"]),
            created_by=user.id,
            estimated_time=sample["estimated_time"],
            created_at=now - timedelta(days=sample["age_days"]),
        )
        logger.info("sample_form_created", title=sample["title"])

    return user
