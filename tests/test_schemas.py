"""Request-model validation."""
import pytest
from pydantic import ValidationError

from app.schemas.completion import CompletionCreate
from app.schemas.user import UserCreate


def _user(**overrides):
    fields = {
        "username": "alice",
        "email": "alice@example.com",
        "password": "password",
        "full_name": "Alice",
    }
    fields.update(overrides)
    return UserCreate(**fields)


class TestUserCreate:

    @pytest.mark.parametrize(
        "email",
        ["a@.com", "a@b@c.d", "a b@c.d", "a@b..c", "no-at-sign.com", "alice@"],
    )
    def test_malformed_email_rejected(self, email):
        with pytest.raises(ValidationError):
            _user(email=email)

    def test_email_lowercased(self):
        assert _user(email="Alice@Example.COM").email == "alice@example.com"

    def test_short_password_rejected(self):
        with pytest.raises(ValidationError):
            _user(password="12345")


class TestCompletionCreate:

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_bounds(self, rating):
        with pytest.raises(ValidationError):
            CompletionCreate(user_id="00000000-0000-0000-0000-000000000001", rating=rating)

    def test_rating_optional(self):
        payload = CompletionCreate(user_id="00000000-0000-0000-0000-000000000001")
        assert payload.rating is None
        assert payload.feedback is None
