"""Tests for merging Google data into venues."""
from datetime import datetime

import pytest
from hypothesis import given, strategies as st

from app.application.services.venue_merger import (
    apply_admin_update,
    build_candidate_from_place,
    map_google_types,
    merge_venue,
)
from app.constants import VENUE_STATUS_ACTIVE, VENUE_STATUS_PENDING
from app.domain.entities.venue import Venue
from app.domain.exceptions import VenueValidationError

NOW = datetime(2024, 6, 1, 12, 0, 0)


def _existing(**fields):
    values = dict(
        id=7,
        name="Old Name",
        google_place_id="place-1",
        latitude=40.0,
        longitude=-74.0,
        status=VENUE_STATUS_ACTIVE,
        follower_count=12,
        view_count=300,
        trending_score=42.0,
    )
    values.update(fields)
    return Venue(**values)


@pytest.mark.unit
class TestMergeVenue:

    def test_new_venue_is_pending(self):
        venue = merge_venue(None, {"name": "Fresh", "google_place_id": "p"}, now=NOW)
        assert venue.id is None
        assert venue.status == VENUE_STATUS_PENDING
        assert venue.admin_overrides == {}
        assert venue.last_refreshed == NOW

    def test_external_fields_replace_existing(self):
        merged = merge_venue(_existing(), {"name": "New Name", "google_rating": 4.4}, now=NOW)
        assert merged.name == "New Name"
        assert merged.google_rating == 4.4
        assert merged.status == VENUE_STATUS_ACTIVE

    def test_admin_override_wins(self):
        existing = _existing(name="Admin Name", admin_overrides={"name": "Admin Name"})
        merged = merge_venue(existing, {"name": "Google Name", "phone": "555"}, now=NOW)
        assert merged.name == "Admin Name"
        assert merged.phone == "555"
        assert merged.admin_overrides == {"name": "Admin Name"}

    def test_engagement_counters_ignored_in_external_data(self):
        merged = merge_venue(_existing(), {"name": "X", "follower_count": 0, "trending_score": 0.0}, now=NOW)
        assert merged.follower_count == 12
        assert merged.trending_score == 42.0

    def test_unknown_override_key_ignored(self):
        existing = _existing(admin_overrides={"not_a_field": 1, "website": "https://admin.example"})
        merged = merge_venue(existing, {"website": "https://google.example"}, now=NOW)
        assert merged.website == "https://admin.example"
        assert not hasattr(merged, "not_a_field")

    @given(st.text(min_size=1, max_size=20), st.text(min_size=1, max_size=20))
    def test_override_always_survives_refresh(self, admin_value, google_value):
        existing = _existing(description=admin_value, admin_overrides={"description": admin_value})
        merged = merge_venue(existing, {"description": google_value}, now=NOW)
        assert merged.description == admin_value


@pytest.mark.unit
class TestAdminUpdate:

    def test_records_overrides_and_audit(self):
        updated = apply_admin_update(_existing(), {"name": "Edited", "is_featured": True}, "admin-1", now=NOW)
        assert updated.name == "Edited"
        assert updated.is_featured is True
        assert updated.admin_overrides == {"name": "Edited", "is_featured": True}
        assert updated.last_modified_by == "admin-1"
        assert updated.last_modified_at == NOW

    def test_merges_with_previous_overrides(self):
        existing = _existing(admin_overrides={"phone": "111"})
        updated = apply_admin_update(existing, {"website": "https://x.example"}, "admin-2", now=NOW)
        assert updated.admin_overrides == {"phone": "111", "website": "https://x.example"}

    def test_rejects_non_editable_field(self):
        with pytest.raises(VenueValidationError):
            apply_admin_update(_existing(), {"follower_count": 1000}, "admin-1")

    def test_rejects_unknown_status(self):
        with pytest.raises(VenueValidationError):
            apply_admin_update(_existing(), {"status": "deleted"}, "admin-1")


@pytest.mark.unit
class TestPlaceMapping:

    def test_map_google_types_dedupes_in_order(self):
        assert map_google_types(["movie_theater", "bowling_alley", "bar"]) == ["Entertainment", "Bar"]

    def test_map_google_types_fallback(self):
        assert map_google_types(["point_of_interest"]) == []
        assert map_google_types(["point_of_interest"], fallback="Other") == ["Other"]

    def test_build_candidate(self, sample_place_details):
        candidate = build_candidate_from_place(sample_place_details)
        assert candidate["name"] == "Test Bar"
        assert candidate["latitude"] == 40.7128
        assert candidate["longitude"] == -74.0060
        assert candidate["google_place_id"] == "ChIJ_test_place"
        assert candidate["google_ratings_total"] == 1000
        assert candidate["phone"] == "(555) 010-0000"
        assert candidate["is_open_now"] is True

    def test_free_price_level_dropped(self, sample_place_details):
        sample_place_details["price_level"] = 0
        assert build_candidate_from_place(sample_place_details)["price_level"] is None
