"""Tests for FormService — store orchestration with a fixed clock."""
import uuid
from datetime import timedelta

import pytest

from app.schemas.form import FormCreate, FormStatus
from app.schemas.user import UserCreate
from app.services.form_service import (
    DuplicateUserError,
    FormNotFoundError,
    FormService,
    InvalidCredentialsError,
    PermissionDeniedError,
    UserNotFoundError,
)


class MutableClock:
    def __init__(self, start):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock(now):
    return MutableClock(now)


@pytest.fixture
def service(memory_store, clock):
    return FormService(memory_store, clock=clock)


async def _register(service, name):
    return await service.register_user(
        UserCreate(
            username=name,
            email=f"{name}@example.com",
            password="password",
            full_name=name.title(),
        )
    )


async def _post_form(service, owner_id, **overrides):
    fields = {
        "title": "Product User Experience Survey",
        "description": "Share your experience with our product.",
        "url": "https://forms.example.com/ux",
        "tags": ["Product Testing", "User Experience"],
        "estimated_time": 8,
        "created_by": owner_id,
    }
    fields.update(overrides)
    return await service.create_form(FormCreate(**fields))


class TestMarkFormAsCompleted:

    @pytest.mark.asyncio
    async def test_second_call_updates_in_place(self, service, clock):
        owner = await _register(service, "owner")
        filler = await _register(service, "filler")
        form = await _post_form(service, owner.id)

        first = await service.mark_form_as_completed(form.id, filler.id, rating=2, feedback="slow")
        clock.advance(hours=3)
        second = await service.mark_form_as_completed(form.id, filler.id, rating=5, feedback="fixed")

        records = await service.store.list_completions(form_id=form.id, user_id=filler.id)
        assert len(records) == 1
        assert second.id == first.id
        assert records[0].rating == 5
        assert records[0].feedback == "fixed"
        assert records[0].completed_at == clock() > first.completed_at

    @pytest.mark.asyncio
    async def test_unknown_form(self, service):
        filler = await _register(service, "filler")
        with pytest.raises(FormNotFoundError):
            await service.mark_form_as_completed(uuid.uuid4(), filler.id)

    @pytest.mark.asyncio
    async def test_unknown_user(self, service):
        owner = await _register(service, "owner")
        form = await _post_form(service, owner.id)
        with pytest.raises(UserNotFoundError):
            await service.mark_form_as_completed(form.id, uuid.uuid4())


class TestFormListing:

    @pytest.mark.asyncio
    async def test_stats_and_viewer_status(self, service, clock):
        owner = await _register(service, "owner")
        viewer = await _register(service, "viewer")
        other = await _register(service, "other")
        form = await _post_form(service, owner.id)
        await service.mark_form_as_completed(form.id, viewer.id, rating=4)
        await service.mark_form_as_completed(form.id, other.id, rating=2)

        anonymous = await service.list_forms()
        assert anonymous[0].rating == 3.0
        assert anonymous[0].review_count == 2
        assert anonymous[0].is_completed is None
        assert anonymous[0].status == FormStatus.NEW

        as_viewer = await service.list_forms(viewer_id=viewer.id)
        assert as_viewer[0].is_completed is True
        assert as_viewer[0].status == FormStatus.COMPLETED

        as_owner = await service.list_forms(viewer_id=owner.id)
        assert as_owner[0].is_completed is False
        assert as_owner[0].status == FormStatus.NEW

        clock.advance(days=8)
        later = await service.get_form_with_stats(form.id)
        assert later.status is None

    @pytest.mark.asyncio
    async def test_create_form_requires_known_owner(self, service):
        with pytest.raises(UserNotFoundError):
            await _post_form(service, uuid.uuid4())


class TestOwnership:

    @pytest.mark.asyncio
    async def test_only_owner_may_edit_or_delete(self, service):
        owner = await _register(service, "owner")
        intruder = await _register(service, "intruder")
        form = await _post_form(service, owner.id)

        with pytest.raises(PermissionDeniedError):
            await service.update_form(form.id, intruder.id, {"title": "Hijacked"})
        with pytest.raises(PermissionDeniedError):
            await service.delete_form(form.id, intruder.id)

        updated = await service.update_form(form.id, owner.id, {"title": "Renamed"})
        assert updated.title == "Renamed"

        await service.delete_form(form.id, owner.id)
        with pytest.raises(FormNotFoundError):
            await service.get_form(form.id)


class TestUserStatistics:

    @pytest.mark.asyncio
    async def test_stats_windows_and_received_ratings(self, service, clock, now):
        owner = await _register(service, "owner")
        filler = await _register(service, "filler")
        owned = await _post_form(service, owner.id)
        targets = [await _post_form(service, filler.id, title=f"Survey {i}") for i in range(3)]

        # filler completes at now-40d, now-10d, now-1d
        clock.current = now - timedelta(days=40)
        await service.mark_form_as_completed(targets[0].id, owner.id)
        clock.current = now - timedelta(days=10)
        await service.mark_form_as_completed(targets[1].id, owner.id)
        clock.current = now - timedelta(days=1)
        await service.mark_form_as_completed(targets[2].id, owner.id)
        await service.mark_form_as_completed(owned.id, filler.id, rating=4)
        clock.current = now

        stats = await service.get_user_stats(owner.id)
        assert stats.total_filled == 3
        assert stats.last_7_days == 1
        assert stats.last_30_days == 2
        assert stats.forms_posted == 1
        assert stats.avg_rating == 4.0

        profile = await service.get_user_with_stats(owner.id)
        assert profile.username == "owner"
        assert profile.stats == stats
        assert not hasattr(profile, "password")

    @pytest.mark.asyncio
    async def test_activity_histogram(self, service, clock, now):
        owner = await _register(service, "owner")
        form = await _post_form(service, owner.id)
        await service.mark_form_as_completed(form.id, owner.id)

        series = await service.get_activity_data(owner.id, days=30)
        assert len(series) == 31
        assert series[-1].date == now.date().isoformat()
        assert series[-1].count == 1

    @pytest.mark.asyncio
    async def test_recent_activities_with_deleted_form(self, service, clock):
        owner = await _register(service, "owner")
        filler = await _register(service, "filler")
        kept = await _post_form(service, owner.id, title="Kept")
        doomed = await _post_form(service, owner.id, title="Doomed")

        clock.advance(minutes=1)
        await service.mark_form_as_completed(kept.id, filler.id, rating=5, feedback="good")
        clock.advance(minutes=1)
        await service.mark_form_as_completed(doomed.id, filler.id, rating=1)
        await service.delete_form(doomed.id, owner.id)
        clock.advance(minutes=1)
        mine = await _post_form(service, filler.id, title="Mine")

        feed = await service.get_recent_activities(filler.id, limit=10)
        assert [a.activity_type for a in feed] == ["posted", "completed", "completed"]
        assert feed[0].form_id == mine.id
        assert feed[1].form_title == "Unknown Form"
        assert feed[2].form_title == "Kept"
        assert feed[2].rating == 5

    @pytest.mark.asyncio
    async def test_unknown_user(self, service):
        with pytest.raises(UserNotFoundError):
            await service.get_user_stats(uuid.uuid4())


class TestRegistration:

    @pytest.mark.asyncio
    async def test_duplicate_username_and_email(self, service):
        await _register(service, "alice")
        with pytest.raises(DuplicateUserError):
            await _register(service, "alice")
        with pytest.raises(DuplicateUserError):
            await service.register_user(
                UserCreate(username="alice2", email="alice@example.com", password="password", full_name="A")
            )

    @pytest.mark.asyncio
    async def test_authenticate(self, service):
        user = await _register(service, "alice")
        assert user.password != "password"
        assert (await service.authenticate("alice", "password")).id == user.id
        with pytest.raises(InvalidCredentialsError):
            await service.authenticate("alice", "wrong")
        with pytest.raises(InvalidCredentialsError):
            await service.authenticate("nobody", "password")
