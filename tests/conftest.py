"""Shared pytest fixtures for Formloop tests."""
import uuid
from datetime import datetime, timezone

import pytest

from app.stores.memory import MemoryRecordStore
from app.stores.records import CompletionRecord, FormRecord

# Noon UTC keeps day-boundary arithmetic in the tests readable.
FIXED_NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def sample_user_id():
    return uuid.uuid4()


@pytest.fixture
def sample_user_id_b():
    return uuid.uuid4()


@pytest.fixture
def form_factory():
    """Build ``FormRecord`` objects with sensible defaults."""
    def _make(**overrides):
        fields = {
            "id": uuid.uuid4(),
            "title": "Student Feedback Survey",
            "description": "Tell us about your learning experience.",
            "url": "https://forms.example.com/student-feedback",
            "tags": ["Academic", "Education"],
            "created_by": uuid.uuid4(),
            "estimated_time": 5,
            "created_at": FIXED_NOW,
        }
        fields.update(overrides)
        return FormRecord(**fields)
    return _make


@pytest.fixture
def completion_factory():
    """Build ``CompletionRecord`` objects with sensible defaults."""
    def _make(**overrides):
        fields = {
            "id": uuid.uuid4(),
            "form_id": uuid.uuid4(),
            "user_id": uuid.uuid4(),
            "rating": None,
            "feedback": None,
            "completed_at": FIXED_NOW,
        }
        fields.update(overrides)
        return CompletionRecord(**fields)
    return _make


@pytest.fixture
def memory_store():
    return MemoryRecordStore()
