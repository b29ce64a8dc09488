"""Tests for venue engagement, events and the versioned cache."""
from datetime import time

import pytest

from app.application.services.trending_service import TrendingService
from app.application.services.venue_cache_service import VenueCacheService
from app.application.services.venue_event_handler import VenueEventHandler, parse_event
from app.application.services.venue_service import VenueService, recent_searches_key
from app.core.background import drain_background_tasks
from app.domain.events import PlanAssociatedWithVenue, PlanViewed
from app.domain.entities.venue import VenueHours
from app.domain.exceptions import (
    PermissionDeniedError,
    VenueNotFoundError,
    VenueValidationError,
)
from app.domain.value_objects.roles import Actor, Role

USER = Actor("user-1")
OWNER = Actor("owner-1", Role.VENUE_OWNER)
ADMIN = Actor("admin-1", Role.ADMIN)


@pytest.fixture
def trending(venue_repo, cache):
    return TrendingService(venue_repo, cache)


@pytest.fixture
def venue_service(venue_repo, trending, cache):
    return VenueService(venue_repo, trending, cache, VenueCacheService(cache))


@pytest.mark.unit
class TestVersionedCache:

    def test_key_format(self):
        key = VenueCacheService.build_key("map_search", 3, {"lon": -74.0, "lat": 40.7})
        assert key == "venue:map_search:3:lat=40.7&lon=-74.0"

    @pytest.mark.asyncio
    async def test_version_defaults_to_one(self, cache):
        assert await VenueCacheService(cache).get_version() == 1

    @pytest.mark.asyncio
    async def test_invalidate_all_bumps_version(self, cache):
        service = VenueCacheService(cache)
        await service.set("text_search", {"items": []}, 30, {"q": "bar"})
        assert await service.get("text_search", {"q": "bar"}) == {"items": []}

        assert await service.invalidate_all() == 2
        assert await service.get("text_search", {"q": "bar"}) is None
        assert await service.invalidate_all() == 3

    @pytest.mark.asyncio
    async def test_cache_outage_is_a_miss(self, cache, fake_redis):
        fake_redis.fail = True
        service = VenueCacheService(cache)
        await service.set("text_search", {"items": []}, 30, {"q": "bar"})
        assert await service.get("text_search", {"q": "bar"}) is None
        assert await service.invalidate_all() is None


@pytest.mark.integration
class TestCounters:

    @pytest.mark.asyncio
    async def test_adjust_counter_never_negative(self, venue_repo, make_venue):
        row = make_venue(follower_count=1)
        assert await venue_repo.adjust_counter(row.id, "follower_count", -1) == 0
        assert await venue_repo.adjust_counter(row.id, "follower_count", -5) == 0
        assert await venue_repo.adjust_counter(row.id, "follower_count", 2) == 2

    @pytest.mark.asyncio
    async def test_adjust_counter_unknown(self, venue_repo, make_venue):
        row = make_venue()
        with pytest.raises(ValueError) as excinfo:
            await venue_repo.adjust_counter(row.id, "rating", 1)
        assert not isinstance(excinfo.value, VenueValidationError)
        assert await venue_repo.adjust_counter(999, "view_count", 1) is None


@pytest.mark.integration
class TestFollow:

    @pytest.mark.asyncio
    async def test_follow_is_idempotent(self, venue_service, make_venue):
        row = make_venue()

        first = await venue_service.follow_venue(row.id, USER)
        second = await venue_service.follow_venue(row.id, USER)
        await drain_background_tasks()

        assert first == {"venue_id": row.id, "is_following": True, "follower_count": 1}
        assert second["follower_count"] == 1
        assert await venue_service.is_following(row.id, USER.user_id)

    @pytest.mark.asyncio
    async def test_unfollow_without_follow_keeps_zero(self, venue_service, make_venue):
        row = make_venue()

        result = await venue_service.unfollow_venue(row.id, USER)

        assert result == {"venue_id": row.id, "is_following": False, "follower_count": 0}

    @pytest.mark.asyncio
    async def test_follow_then_unfollow(self, venue_service, make_venue):
        row = make_venue()
        await venue_service.follow_venue(row.id, USER)
        result = await venue_service.unfollow_venue(row.id, USER)
        await drain_background_tasks()

        assert result["follower_count"] == 0
        assert not await venue_service.is_following(row.id, USER.user_id)

    @pytest.mark.asyncio
    async def test_follow_missing_venue(self, venue_service):
        with pytest.raises(VenueNotFoundError):
            await venue_service.follow_venue(404, USER)


@pytest.mark.integration
class TestVenueReads:

    @pytest.mark.asyncio
    async def test_view_records_count_and_recently_viewed(self, venue_service, venue_repo, make_venue):
        first = make_venue(name="First")
        second = make_venue(name="Second")

        detail = await venue_service.get_venue(first.id, USER)
        await venue_service.get_venue(second.id, USER)
        await venue_service.get_venue(first.id, USER)
        await drain_background_tasks()

        assert detail["is_following"] is False
        assert (await venue_repo.get_by_id(first.id)).view_count == 2
        recent = await venue_service.get_recently_viewed(USER.user_id)
        assert [v["name"] for v in recent] == ["First", "Second"]

    @pytest.mark.asyncio
    async def test_anonymous_view_not_recorded(self, venue_service, venue_repo, make_venue):
        row = make_venue()
        detail = await venue_service.get_venue(row.id)
        await drain_background_tasks()

        assert "is_following" not in detail
        assert (await venue_repo.get_by_id(row.id)).view_count == 0

    @pytest.mark.asyncio
    async def test_text_search_cached_and_recorded(self, venue_service, make_venue, fake_redis):
        make_venue(name="Rooftop Bar")

        result = await venue_service.search_venues_by_text("  rooftop ", actor=USER)
        make_venue(name="Rooftop Lounge")
        cached = await venue_service.search_venues_by_text("Rooftop")

        assert result["total"] == 1
        assert cached == result
        assert await venue_service.get_recent_searches(USER.user_id) == ["rooftop"]
        assert fake_redis.store[recent_searches_key(USER.user_id)] == ["rooftop"]

    @pytest.mark.asyncio
    async def test_trending_pagination(self, venue_service, make_venue):
        for i in range(3):
            make_venue(name=f"Venue {i}", trending_score=float(i))

        page_one = await venue_service.get_trending_venues(page=1, limit=2)
        page_two = await venue_service.get_trending_venues(page=2, limit=2)

        assert [v["name"] for v in page_one["items"]] == ["Venue 2", "Venue 1"]
        assert page_one["has_more"] is True
        assert page_two["has_more"] is False
        assert page_two["total"] == 3

    @pytest.mark.asyncio
    async def test_discover_for_anonymous(self, venue_service, make_venue):
        make_venue(name="Hot", trending_score=5.0)
        discover = await venue_service.get_discover()
        assert discover["recently_viewed"] == []
        assert [v["name"] for v in discover["trending_venues"]["items"]] == ["Hot"]

    @pytest.mark.asyncio
    async def test_admin_update_invalidates_cache(self, venue_service, venue_repo, make_venue, cache):
        row = make_venue(name="Before")
        await venue_service.get_trending_venues()

        updated = await venue_service.admin_update_venue(row.id, {"name": "After"}, "admin-1")

        assert updated["name"] == "After"
        assert updated["admin_overrides"] == {"name": "After"}
        assert await VenueCacheService(cache).get_version() == 2
        trending = await venue_service.get_trending_venues()
        assert trending["items"][0]["name"] == "After"

    @pytest.mark.asyncio
    async def test_set_status(self, venue_service, make_venue):
        row = make_venue()
        with pytest.raises(VenueValidationError):
            await venue_service.set_status(row.id, "archived", "admin-1")
        result = await venue_service.set_status(row.id, "closed", "admin-1")
        assert result["status"] == "closed"
        assert result["last_modified_by"] == "admin-1"


    @pytest.mark.asyncio
    async def test_set_status_records_override(self, venue_service, make_venue):
        row = make_venue(admin_overrides={"status": "active", "name": "Kept"})
        result = await venue_service.set_status(row.id, "closed", "admin-2")
        assert result["admin_overrides"] == {"status": "closed", "name": "Kept"}


@pytest.mark.integration
class TestVenueListings:

    @pytest.mark.asyncio
    async def test_only_admins_and_owners_create(self, venue_service):
        with pytest.raises(PermissionDeniedError):
            await venue_service.create_venue(USER, {"name": "Nope"})
        with pytest.raises(PermissionDeniedError):
            await venue_service.create_venue(Actor("mod-1", Role.MODERATOR), {"name": "Nope"})

    @pytest.mark.asyncio
    async def test_owner_creation_is_pending_admin_creation_active(self, venue_service):
        owned = await venue_service.create_venue(OWNER, {"name": "Owned"}, venue_type_names=["Bar"])
        published = await venue_service.create_venue(ADMIN, {"name": "Published"})

        assert owned["status"] == "pending"
        assert owned["venue_types"] == ["Bar"]
        assert published["status"] == "active"

    @pytest.mark.asyncio
    async def test_create_rejects_bad_listing(self, venue_service):
        with pytest.raises(VenueValidationError):
            await venue_service.create_venue(OWNER, {"name": "   "})
        with pytest.raises(VenueValidationError):
            await venue_service.create_venue(OWNER, {"name": "X", "status": "active"})
        with pytest.raises(VenueValidationError):
            await venue_service.create_venue(OWNER, {"name": "X", "latitude": 95.0, "longitude": 0.0})

    @pytest.mark.asyncio
    async def test_update_records_overrides_and_replaces_hours(self, venue_service, venue_repo, make_venue):
        row = make_venue(name="Before", hours=[("monday", time(9, 0), time(17, 0), {})])

        result = await venue_service.update_venue(
            row.id,
            OWNER,
            {"name": "After"},
            hours=[VenueHours(day_of_week="friday", open_time=time(18, 0), close_time=time(2, 0))],
        )

        assert result["name"] == "After"
        venue = await venue_repo.get_by_id(row.id)
        assert venue.admin_overrides == {"name": "After"}
        assert venue.last_modified_by == "owner-1"
        assert [h.day_of_week for h in venue.hours] == ["friday"]

    @pytest.mark.asyncio
    async def test_update_rejects_moderation_fields(self, venue_service, make_venue):
        row = make_venue()
        with pytest.raises(VenueValidationError):
            await venue_service.update_venue(row.id, OWNER, {"status": "active"})
        with pytest.raises(PermissionDeniedError):
            await venue_service.update_venue(row.id, USER, {"name": "Mine"})

@pytest.mark.unit
class TestParseEvent:

    def test_known_event(self):
        event = parse_event("plan.view", {"plan_id": "plan-1", "venue_id": 3})
        assert event == PlanViewed(plan_id="plan-1", venue_id=3)

    def test_unknown_event_type(self):
        with pytest.raises(VenueValidationError):
            parse_event("plan.deleted", {"plan_id": "plan-1", "venue_id": 3})

    def test_missing_field(self):
        with pytest.raises(VenueValidationError):
            parse_event("plan.associated_with_venue", {"plan_id": "plan-1"})


@pytest.mark.integration
class TestVenueEventHandler:

    @pytest.mark.asyncio
    async def test_events_update_counters_and_score(self, venue_repo, trending, make_venue):
        row = make_venue()
        handler = VenueEventHandler(venue_repo, trending)

        await handler.handle(PlanViewed(plan_id="p", venue_id=row.id))
        score = await handler.handle(PlanAssociatedWithVenue(plan_id="p", venue_id=row.id))

        venue = await venue_repo.get_by_id(row.id)
        assert venue.view_count == 1
        assert venue.associated_plan_count == 1
        assert score == pytest.approx(5.5, rel=1e-3)

    @pytest.mark.asyncio
    async def test_disassociate_clamps_at_zero(self, venue_repo, trending, make_venue):
        row = make_venue()
        handler = VenueEventHandler(venue_repo, trending)

        await handler.handle(parse_event("plan.disassociated_from_venue", {"plan_id": "p", "venue_id": row.id}))

        assert (await venue_repo.get_by_id(row.id)).associated_plan_count == 0

    @pytest.mark.asyncio
    async def test_join_only_recomputes_score(self, venue_repo, trending, make_venue):
        row = make_venue(follower_count=2)
        handler = VenueEventHandler(venue_repo, trending)

        score = await handler.handle(parse_event("plan.join", {"plan_id": "p", "venue_id": row.id, "user_id": "u"}))

        assert score == pytest.approx(5.0, rel=1e-3)
        assert (await venue_repo.get_by_id(row.id)).associated_plan_count == 0
