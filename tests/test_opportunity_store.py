from datetime import datetime, timedelta, timezone

import pytest

from opportunity_explorer.adapters.persistence.memory_store import InMemoryOpportunityStore
from opportunity_explorer.domain.models import (
    ActivityType,
    BusinessOpportunity,
    ResourceType,
    UserActivity,
)


class DateClock:
    """Manually advanced wall clock returning aware UTC datetimes."""

    def __init__(self):
        self.now = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def view(user_id: str, opportunity_id: int, **metadata) -> UserActivity:
    return UserActivity(
        user_id=user_id,
        activity_type=ActivityType.VIEWED_OPPORTUNITY,
        resource_id=opportunity_id,
        resource_type=ResourceType.OPPORTUNITY,
        metadata=metadata,
    )


@pytest.fixture
def date_clock():
    return DateClock()


@pytest.fixture
def store(date_clock):
    return InMemoryOpportunityStore.with_sample_data(clock=date_clock)


async def test_bookmark_timestamps_are_utc_aware(store, date_clock):
    await store.add_bookmark("user_1", 1)

    [bookmark] = await store.get_bookmarks("user_1")

    assert bookmark.saved_at == date_clock.now
    assert bookmark.saved_at.utcoffset() == timedelta(0)


async def test_sample_data_timestamps_are_utc_aware():
    store = InMemoryOpportunityStore.with_sample_data()

    opportunities = await store.list_opportunities()

    assert all(o.processed_at.tzinfo is not None for o in opportunities)


async def test_bookmark_status_and_count(store):
    await store.add_bookmark("user_1", 1)
    await store.add_bookmark("user_1", 3)

    assert await store.is_bookmarked("user_1", 1) is True
    assert await store.is_bookmarked("user_1", 2) is False
    assert await store.is_bookmarked("user_2", 1) is False
    assert await store.count_bookmarks("user_1") == 2
    assert await store.count_bookmarks("user_2") == 0


async def test_repeated_view_updates_existing_entry(store, date_clock):
    await store.track_activity(view("user_1", 2, source="list"))
    date_clock.advance(minutes=5)
    await store.track_activity(view("user_1", 2, source="detail"))

    history = await store.get_activity_history("user_1")

    assert len(history) == 1
    assert history[0].created_at == date_clock.now
    assert history[0].metadata == {"source": "detail"}


async def test_other_activities_are_appended(store, date_clock):
    search = UserActivity(
        user_id="user_1",
        activity_type=ActivityType.SEARCHED,
        resource_type=ResourceType.SEARCH_QUERY,
        metadata={"searchTerm": "invoice"},
    )
    await store.track_activity(search)
    date_clock.advance(seconds=1)
    await store.track_activity(search)
    date_clock.advance(seconds=1)
    await store.track_activity(view("user_1", 1))

    history = await store.get_activity_history("user_1")

    assert [a.activity_type for a in history] == [
        ActivityType.VIEWED_OPPORTUNITY,
        ActivityType.SEARCHED,
        ActivityType.SEARCHED,
    ]
    assert len({a.id for a in history}) == 3


async def test_activity_history_pagination(store, date_clock):
    for opportunity_id in (1, 2, 3):
        await store.track_activity(view("user_1", opportunity_id))
        date_clock.advance(minutes=1)

    page = await store.get_activity_history("user_1", limit=1, offset=1)

    assert [a.resource_id for a in page] == [2]


async def test_recently_viewed_newest_first_within_window(store, date_clock):
    await store.track_activity(view("user_1", 3))
    date_clock.advance(days=3)
    await store.track_activity(view("user_1", 1))
    date_clock.advance(hours=1)
    await store.track_activity(view("user_1", 2))

    recent = await store.get_recently_viewed("user_1", days_back=2)

    assert [r.opportunity.id for r in recent] == [2, 1]
    assert recent[0].viewed_at == date_clock.now
    assert await store.count_recently_viewed("user_1", days_back=2) == 2
    assert await store.count_recently_viewed("user_1", days_back=7) == 3


async def test_recently_viewed_respects_limit(store, date_clock):
    for opportunity_id in (1, 2, 3):
        await store.track_activity(view("user_1", opportunity_id))
        date_clock.advance(minutes=1)

    recent = await store.get_recently_viewed("user_1", limit=2)

    assert [r.opportunity.id for r in recent] == [3, 2]


async def test_recently_viewed_skips_inactive_and_unknown(date_clock):
    store = InMemoryOpportunityStore(
        opportunities=[
            BusinessOpportunity(id=1, main_title="Live", subreddit="freelance"),
            BusinessOpportunity(id=2, main_title="Retired", subreddit="freelance", is_active=False),
        ],
        clock=date_clock,
    )
    for opportunity_id in (1, 2, 99):
        await store.track_activity(view("user_1", opportunity_id))

    recent = await store.get_recently_viewed("user_1")

    assert [r.opportunity.id for r in recent] == [1]


async def test_clear_activity_is_per_user(store):
    await store.track_activity(view("user_1", 1))
    await store.track_activity(view("user_1", 2))
    await store.track_activity(view("user_2", 1))

    assert await store.clear_activity("user_1") == 2
    assert await store.get_activity_history("user_1") == []
    assert len(await store.get_activity_history("user_2")) == 1


async def test_cleanup_removes_old_activity(store, date_clock):
    await store.track_activity(view("user_1", 1))
    date_clock.advance(days=400)
    await store.track_activity(view("user_2", 2))

    assert await store.cleanup_activities(days_to_keep=365) == 1
    assert await store.get_activity_history("user_1") == []
    assert len(await store.get_activity_history("user_2")) == 1


async def test_user_dashboard_data(store, date_clock):
    await store.add_bookmark("user_1", 2)
    await store.track_activity(view("user_1", 1))
    date_clock.advance(minutes=1)
    await store.track_activity(view("user_1", 3))

    data = await store.get_user_dashboard_data("user_1", recent_days_back=2)

    assert [r.opportunity.id for r in data.recently_viewed] == [3, 1]
    assert [b.opportunity.id for b in data.bookmarks] == [2]
    assert data.recently_viewed_count == 2
    assert data.bookmarked_count == 1
    assert data.recent_days_back == 2
