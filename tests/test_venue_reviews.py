"""Tests for venue reviews and the aggregate rating."""
import pytest

from app.application.services.venue_cache_service import VenueCacheService
from app.application.services.venue_review_service import VenueReviewService
from app.domain.entities.venue_review import VenueReview
from app.domain.exceptions import DuplicateReviewError, VenueNotFoundError, VenueValidationError
from app.domain.value_objects.roles import Actor
from app.infrastructure.persistence.repositories.sqlalchemy_venue_review_repository import (
    SQLAlchemyVenueReviewRepository,
)


@pytest.fixture
def review_repo(test_db_session):
    return SQLAlchemyVenueReviewRepository(test_db_session)


@pytest.fixture
def review_service(review_repo, venue_repo, cache):
    return VenueReviewService(review_repo, venue_repo, VenueCacheService(cache))


@pytest.mark.integration
class TestVenueReviews:

    @pytest.mark.asyncio
    async def test_rating_is_rounded_mean_of_reviews(self, review_service, venue_repo, make_venue):
        row = make_venue()
        for user, rating in (("u1", 4), ("u2", 4), ("u3", 5)):
            await review_service.add_venue_review(row.id, Actor(user), rating)

        venue = await venue_repo.get_by_id(row.id)
        assert venue.rating == 4.3
        assert venue.review_count == 3

    @pytest.mark.asyncio
    async def test_unpublished_reviews_ignored(self, review_service, review_repo, venue_repo, make_venue):
        row = make_venue()
        await review_repo.create(VenueReview(id=None, venue_id=row.id, user_id="hidden", rating=1, is_published=False))
        await review_service.add_venue_review(row.id, Actor("u1"), 5, "Great")

        venue = await venue_repo.get_by_id(row.id)
        assert venue.rating == 5.0
        assert venue.review_count == 1
        reviews = await review_service.get_venue_reviews(row.id)
        assert [r["user_id"] for r in reviews] == ["u1"]
        assert reviews[0]["review"] == "Great"

    @pytest.mark.asyncio
    async def test_rating_without_reviews_is_zero(self, review_service, venue_repo, make_venue):
        row = make_venue(rating=3.5, review_count=2)

        assert await review_service.update_venue_rating(row.id) == 0

        venue = await venue_repo.get_by_id(row.id)
        assert venue.rating == 0
        assert venue.review_count == 0

    @pytest.mark.asyncio
    async def test_one_review_per_user(self, review_service, make_venue):
        row = make_venue()
        await review_service.add_venue_review(row.id, Actor("u1"), 2)

        with pytest.raises(DuplicateReviewError):
            await review_service.add_venue_review(row.id, Actor("u1"), 5)

    @pytest.mark.asyncio
    async def test_reviews_paginate_newest_first(self, review_service, make_venue):
        row = make_venue()
        for user in ("u1", "u2", "u3"):
            await review_service.add_venue_review(row.id, Actor(user), 3)

        page = await review_service.get_venue_reviews(row.id, limit=2, offset=1)

        assert [r["user_id"] for r in page] == ["u2", "u1"]

    @pytest.mark.asyncio
    async def test_rejects_bad_rating_and_missing_venue(self, review_service, make_venue):
        row = make_venue()
        with pytest.raises(VenueValidationError):
            await review_service.add_venue_review(row.id, Actor("u1"), 0)
        with pytest.raises(VenueNotFoundError):
            await review_service.add_venue_review(9999, Actor("u1"), 4)
        with pytest.raises(VenueNotFoundError):
            await review_service.get_venue_reviews(9999)

    @pytest.mark.asyncio
    async def test_review_invalidates_cache(self, review_service, make_venue, cache):
        row = make_venue()
        await review_service.add_venue_review(row.id, Actor("u1"), 4)
        assert await VenueCacheService(cache).get_version() == 2
