"""
HTTP API tests.

Routes run against the in-memory database with Redis, Google Places, the
scan queue and image storage replaced by fakes (see conftest.py).
"""
from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy.orm import sessionmaker

from app.core.settings import settings
from app.infrastructure.persistence.repositories.sqlalchemy_venue_repository import SQLAlchemyVenueRepository
from app.services.health_service import HealthStatus, health_service

API = "/api/v1"
INTERNAL_HEADERS = {"X-Internal-Key": "test_internal_key"}
OWNER_HEADERS = {"X-User-Id": "owner-1", "X-User-Role": "venue_owner"}
ADMIN_USER_HEADERS = {"X-User-Id": "admin-7", "X-User-Role": "admin"}


def _png_bytes():
    output = BytesIO()
    Image.new("RGB", (320, 240), (10, 120, 200)).save(output, format="PNG")
    return output.getvalue()


@pytest.mark.integration
class TestAdminAuth:

    def test_missing_admin_key(self, client):
        response = client.get(f"{API}/admin/venues/overrides")
        assert response.status_code == 422

    def test_invalid_admin_key(self, client, invalid_admin_headers):
        response = client.get(f"{API}/admin/venues/overrides", headers=invalid_admin_headers)
        assert response.status_code == 403
        assert response.json()["detail"] == "Invalid admin key"

    def test_admin_key_not_configured(self, client, admin_headers, monkeypatch):
        monkeypatch.setattr(settings, "ADMIN_KEY", None)
        response = client.get(f"{API}/admin/venues/overrides", headers=admin_headers)
        assert response.status_code == 500

    def test_backfill_requires_admin_key(self, client, invalid_admin_headers):
        response = client.get(f"{API}/admin/backfill/venues-without-city", headers=invalid_admin_headers)
        assert response.status_code == 403


@pytest.mark.integration
class TestVenueSearchApi:

    def test_map_search_requires_location(self, client):
        response = client.get(f"{API}/venues/map")
        assert response.status_code == 400

    def test_map_search(self, client, make_venue):
        make_venue(name="Near", latitude=40.7228)
        make_venue(name="Pending", status="pending")

        response = client.get(f"{API}/venues/map", params={"lat": 40.7128, "lon": -74.0060, "radius": 5})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["venues"][0]["name"] == "Near"
        assert data["venues"][0]["distance_miles"] == pytest.approx(0.691, abs=0.01)

    def test_invalid_search_options(self, client):
        response = client.get(f"{API}/venues/search", params={"lat": 40.7, "lon": -74.0, "radius": 500})
        assert response.status_code == 400
        response = client.get(f"{API}/venues/search", params={"lat": 40.7})
        assert response.status_code == 400
        response = client.get(f"{API}/venues/search", params={"open_now": True, "tz": "Nowhere/City"})
        assert response.status_code == 400

    def test_search_without_location(self, client, make_venue):
        make_venue(name="Cheap", price_level=1)
        make_venue(name="Fancy", price_level=4)

        response = client.get(f"{API}/venues/search", params={"price_level": 4})

        assert response.status_code == 200
        assert [v["name"] for v in response.json()["venues"]] == ["Fancy"]

    def test_nearby(self, client, make_venue):
        make_venue(name="Close", latitude=40.7130)
        response = client.get(f"{API}/venues/nearby", params={"lat": 40.7128, "lon": -74.0060})
        assert response.status_code == 200
        assert [v["name"] for v in response.json()] == ["Close"]

    def test_geocode(self, client, places_client):
        places_client.geocoded["Times Square"] = {"latitude": 40.758, "longitude": -73.9855}

        response = client.get(f"{API}/venues/geocode", params={"address": "Times Square"})
        assert response.status_code == 200
        assert response.json() == {"latitude": 40.758, "longitude": -73.9855}

        assert client.get(f"{API}/venues/geocode", params={"address": "Atlantis"}).status_code == 404

    def test_reverse_geocode(self, client, places_client):
        places_client.addresses[(40.758, -73.9855)] = "Times Square, New York"

        response = client.get(f"{API}/venues/reverse-geocode", params={"lat": 40.758, "lon": -73.9855})
        assert response.status_code == 200
        assert response.json()["address"] == "Times Square, New York"

        assert client.get(f"{API}/venues/reverse-geocode", params={"lat": 0, "lon": 0}).status_code == 404
        assert client.get(f"{API}/venues/reverse-geocode", params={"lat": 91, "lon": 0}).status_code == 422

    def test_text_search_and_recent_searches(self, client, make_venue, user_headers):
        make_venue(name="Jazz Club")

        response = client.get(f"{API}/venues/text-search", params={"q": "jazz"}, headers=user_headers)
        assert response.status_code == 200
        assert response.json()["total"] == 1

        recent = client.get(f"{API}/venues/recent-searches", headers=user_headers)
        assert recent.json() == ["jazz"]
        assert client.get(f"{API}/venues/recent-searches").status_code == 401

    def test_types(self, client, make_venue):
        make_venue(types=["Bar", "Nightclub"])
        response = client.get(f"{API}/venues/types")
        assert [t["name"] for t in response.json()] == ["Bar", "Nightclub"]


@pytest.mark.integration
class TestVenueDetailApi:

    def test_detail_not_found(self, client):
        response = client.get(f"{API}/venues/9999")
        assert response.status_code == 404

    def test_detail(self, client, make_venue, user_headers):
        row = make_venue(name="Detail Bar")

        anonymous = client.get(f"{API}/venues/{row.id}")
        signed_in = client.get(f"{API}/venues/{row.id}", headers=user_headers)

        assert anonymous.status_code == 200
        assert anonymous.json()["name"] == "Detail Bar"
        assert signed_in.json()["is_following"] is False

    def test_unknown_role(self, client, make_venue):
        row = make_venue()
        response = client.get(f"{API}/venues/{row.id}", headers={"X-User-Id": "u", "X-User-Role": "superuser"})
        assert response.status_code == 400

    def test_follow_requires_user(self, client, make_venue):
        row = make_venue()
        assert client.post(f"{API}/venues/{row.id}/follow").status_code == 401

    def test_follow_and_unfollow(self, client, make_venue, user_headers):
        row = make_venue()

        followed = client.post(f"{API}/venues/{row.id}/follow", headers=user_headers)
        again = client.post(f"{API}/venues/{row.id}/follow", headers=user_headers)
        unfollowed = client.delete(f"{API}/venues/{row.id}/follow", headers=user_headers)

        assert followed.json() == {"venue_id": row.id, "is_following": True, "follower_count": 1}
        assert again.json()["follower_count"] == 1
        assert unfollowed.json()["follower_count"] == 0

    def test_trending_and_discover(self, client, make_venue):
        make_venue(name="Hot", trending_score=9.0)
        make_venue(name="Warm", trending_score=3.0)

        trending = client.get(f"{API}/venues/trending", params={"limit": 1})
        assert trending.json()["items"][0]["name"] == "Hot"
        assert trending.json()["has_more"] is True

        discover = client.get(f"{API}/venues/discover")
        assert discover.json()["recently_viewed"] == []
        assert len(discover.json()["trending_venues"]["items"]) == 2


@pytest.mark.integration
class TestPhotoApi:

    def test_user_upload_waits_for_moderation(self, client, make_venue, user_headers, admin_headers, image_storage):
        row = make_venue()

        response = client.post(
            f"{API}/venues/{row.id}/photos",
            files={"file": ("photo.png", _png_bytes(), "image/png")},
            data={"caption": "Patio"},
            headers=user_headers,
        )

        assert response.status_code == 201
        photo = response.json()
        assert photo["is_approved"] is False
        assert len(image_storage.uploads) == 4
        assert client.get(f"{API}/venues/{row.id}/photos").json() == []

        approved = client.post(f"{API}/admin/photos/{photo['id']}/approve", headers=admin_headers)
        assert approved.json()["is_approved"] is True
        assert len(client.get(f"{API}/venues/{row.id}/photos").json()) == 1

    def test_upload_storage_failure(self, client, make_venue, user_headers, image_storage):
        row = make_venue()
        image_storage.fail = True

        response = client.post(
            f"{API}/venues/{row.id}/photos",
            files={"file": ("photo.png", _png_bytes(), "image/png")},
            headers=user_headers,
        )
        assert response.status_code == 502

    def test_set_primary_requires_owner(self, client, make_venue, user_headers):
        row = make_venue()
        owner = {"X-User-Id": "owner-1", "X-User-Role": "venue_owner"}
        first = client.post(f"{API}/venues/{row.id}/photos", data={"photo_url": "https://img.test/1.jpg"}, headers=owner).json()
        second = client.post(f"{API}/venues/{row.id}/photos", data={"photo_url": "https://img.test/2.jpg"}, headers=owner).json()

        assert client.put(f"{API}/venues/{row.id}/photos/{first['id']}/primary", headers=user_headers).status_code == 403
        client.put(f"{API}/venues/{row.id}/photos/{first['id']}/primary", headers=owner)
        client.put(f"{API}/venues/{row.id}/photos/{second['id']}/primary", headers=owner)

        photos = client.get(f"{API}/venues/{row.id}/photos").json()
        assert [p["id"] for p in photos if p["is_primary"]] == [second["id"]]

    def test_delete_photo_scoped_to_venue(self, client, make_venue, admin_headers):
        row = make_venue()
        other = make_venue(name="Other")
        admin_actor = {"X-User-Id": "admin-1", "X-User-Role": "admin"}
        photo = client.post(f"{API}/venues/{row.id}/photos", data={"photo_url": "https://img.test/1.jpg"}, headers=admin_actor).json()

        assert client.delete(f"{API}/venues/{other.id}/photos/{photo['id']}", headers=admin_actor).status_code == 404
        assert client.delete(f"{API}/venues/{row.id}/photos/{photo['id']}", headers=admin_actor).status_code == 204

    def test_bulk_approve(self, client, make_venue, user_headers, admin_headers):
        row = make_venue()
        photo = client.post(f"{API}/venues/{row.id}/photos", data={"photo_url": "https://img.test/1.jpg"}, headers=user_headers).json()

        response = client.post(
            f"{API}/admin/photos/bulk-approve",
            json={"photo_ids": [photo["id"], 777]},
            headers=admin_headers,
        )

        assert response.json() == {"approved": [photo["id"]], "failed": [777]}


@pytest.mark.integration
class TestAdminVenueApi:

    def test_update_records_override(self, client, make_venue, admin_headers):
        row = make_venue(name="Original")

        response = client.patch(f"{API}/admin/venues/{row.id}", json={"name": "Edited", "price_level": 2}, headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Edited"
        assert data["admin_overrides"] == {"name": "Edited", "price_level": 2}
        assert data["last_modified_by"] == "admin-1"

        overrides = client.get(f"{API}/admin/venues/overrides", headers=admin_headers).json()
        assert overrides["total"] == 1
        assert overrides["items"][0]["id"] == row.id

    def test_update_validation(self, client, make_venue, admin_headers):
        row = make_venue()
        response = client.patch(f"{API}/admin/venues/{row.id}", json={"price_level": 9}, headers=admin_headers)
        assert response.status_code == 422
        assert client.patch(f"{API}/admin/venues/9999", json={"name": "X"}, headers=admin_headers).status_code == 404

    def test_set_status(self, client, make_venue, admin_headers):
        row = make_venue(status="pending")

        response = client.patch(f"{API}/admin/venues/{row.id}/status", json={"status": "active"}, headers=admin_headers)

        assert response.json()["status"] == "active"
        assert client.get(f"{API}/venues/search").json()["total"] == 1

    def test_invalid_status_in_update_is_bad_request(self, client, make_venue, admin_headers):
        row = make_venue()
        response = client.patch(f"{API}/admin/venues/{row.id}", json={"status": "archived"}, headers=admin_headers)
        assert response.status_code == 400
        assert "archived" in response.json()["detail"]

    def test_refresh_requires_google_place_id(self, client, make_venue, admin_headers):
        row = make_venue(google_place_id=None)
        response = client.post(f"{API}/admin/venues/{row.id}/refresh", headers=admin_headers)
        assert response.status_code == 404
        assert "Google place id" in response.json()["detail"]

    def test_refresh_without_google_details(self, client, make_venue, admin_headers):
        row = make_venue(google_place_id="gone")
        response = client.post(f"{API}/admin/venues/{row.id}/refresh", headers=admin_headers)
        assert response.status_code == 502

    def test_import_from_google(self, client, admin_headers, places_client, sample_place_details):
        places_client.places = [{"place_id": "ChIJ_test_place"}, {"place_id": "gone"}]
        places_client.details = {"ChIJ_test_place": sample_place_details}

        response = client.post(
            f"{API}/admin/venues/import",
            json={"latitude": 40.7128, "longitude": -74.0060, "category": "bar"},
            headers=admin_headers,
        )

        assert response.json() == {"found": 2, "created": 1, "updated": 0, "failed": 1}

    def test_trending_refresh(self, client, make_venue, admin_headers):
        make_venue(follower_count=1)
        response = client.post(f"{API}/admin/trending/refresh", headers=admin_headers)
        assert response.json() == {"total": 1, "updated": 1, "failed": 0}

    def test_staleness_check(self, client, admin_headers, make_venue, dispatched):
        make_venue(last_refreshed=None)

        response = client.post(f"{API}/admin/maintenance/staleness-check", headers=admin_headers)

        assert response.json()["stale_venues_count"] == 1
        assert response.json()["enqueued_count"] == 1
        assert len(dispatched) == 1


@pytest.mark.integration
class TestVenueListingApi:

    def test_anonymous_cannot_create(self, client):
        assert client.post(f"{API}/venues", json={"name": "Nope"}).status_code == 401

    def test_regular_user_cannot_create(self, client, user_headers):
        response = client.post(f"{API}/venues", json={"name": "Nope"}, headers=user_headers)
        assert response.status_code == 403

    def test_owner_listing_waits_for_moderation(self, client):
        response = client.post(
            f"{API}/venues",
            json={
                "name": "Owner Bar",
                "latitude": 40.7128,
                "longitude": -74.0060,
                "venue_types": ["Bar"],
                "hours": [{"day_of_week": "friday", "open_time": "18:00", "close_time": "02:00"}],
            },
            headers=OWNER_HEADERS,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["venue_types"] == ["Bar"]
        assert data["hours"][0]["open_time"] == "18:00:00"
        assert client.get(f"{API}/venues/search").json()["total"] == 0

    def test_admin_listing_is_published(self, client):
        response = client.post(f"{API}/venues", json={"name": "Admin Cafe"}, headers=ADMIN_USER_HEADERS)

        assert response.status_code == 201
        assert response.json()["status"] == "active"
        assert client.get(f"{API}/venues/search").json()["total"] == 1

    def test_create_validation(self, client):
        assert client.post(f"{API}/venues", json={"name": ""}, headers=OWNER_HEADERS).status_code == 422
        response = client.post(f"{API}/venues", json={"name": "Half Located", "latitude": 40.0}, headers=OWNER_HEADERS)
        assert response.status_code == 400

    def test_update_requires_manager_role(self, client, make_venue, user_headers):
        row = make_venue()
        response = client.patch(f"{API}/venues/{row.id}", json={"name": "Mine"}, headers=user_headers)
        assert response.status_code == 403
        assert client.patch(f"{API}/venues/9999", json={"name": "X"}, headers=OWNER_HEADERS).status_code == 404
        assert client.patch(f"{API}/venues/{row.id}", json={}, headers=OWNER_HEADERS).status_code == 400

    def test_owner_edits_survive_google_refresh(self, client, make_venue, admin_headers, places_client, sample_place_details):
        row = make_venue(name="Google Name", google_place_id="ChIJ_test_place")
        places_client.details = {"ChIJ_test_place": sample_place_details}

        response = client.patch(
            f"{API}/venues/{row.id}",
            json={"name": "Owner Name", "website": "https://owner.example"},
            headers=OWNER_HEADERS,
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Owner Name"

        refreshed = client.post(f"{API}/admin/venues/{row.id}/refresh", headers=admin_headers)

        assert refreshed.status_code == 200
        data = refreshed.json()
        assert data["name"] == "Owner Name"
        assert data["website"] == "https://owner.example"
        assert data["google_rating"] == 4.5
        assert data["admin_overrides"] == {"name": "Owner Name", "website": "https://owner.example"}


@pytest.mark.integration
class TestReviewApi:

    def test_reviews_update_venue_rating(self, client, make_venue, user_headers):
        row = make_venue()

        first = client.post(f"{API}/venues/{row.id}/reviews", json={"rating": 4, "review": "Good"}, headers=user_headers)
        second = client.post(
            f"{API}/venues/{row.id}/reviews",
            json={"rating": 5},
            headers={"X-User-Id": "user-2", "X-User-Role": "user"},
        )

        assert first.status_code == 201
        assert second.status_code == 201
        venue = client.get(f"{API}/venues/{row.id}").json()
        assert venue["rating"] == 4.5
        assert venue["review_count"] == 2
        reviews = client.get(f"{API}/venues/{row.id}/reviews").json()
        assert [r["user_id"] for r in reviews] == ["user-2", "user-1"]

    def test_second_review_by_same_user_forbidden(self, client, make_venue, user_headers):
        row = make_venue()
        client.post(f"{API}/venues/{row.id}/reviews", json={"rating": 3}, headers=user_headers)

        response = client.post(f"{API}/venues/{row.id}/reviews", json={"rating": 5}, headers=user_headers)

        assert response.status_code == 403
        assert client.get(f"{API}/venues/{row.id}").json()["rating"] == 3.0

    def test_review_validation(self, client, make_venue, user_headers):
        row = make_venue()
        assert client.post(f"{API}/venues/{row.id}/reviews", json={"rating": 6}, headers=user_headers).status_code == 422
        assert client.post(f"{API}/venues/{row.id}/reviews", json={"rating": 4}).status_code == 401
        assert client.post(f"{API}/venues/9999/reviews", json={"rating": 4}, headers=user_headers).status_code == 404
        assert client.get(f"{API}/venues/9999/reviews").status_code == 404


@pytest.mark.integration
class TestBackfillApi:

    def test_list_and_set_city(self, client, make_venue, admin_headers):
        row = make_venue()

        listed = client.get(f"{API}/admin/backfill/venues-without-city", headers=admin_headers)
        assert [v["id"] for v in listed.json()] == [row.id]

        updated = client.patch(f"{API}/admin/backfill/venues/{row.id}/city", json={"city_id": 5}, headers=admin_headers)
        assert updated.json() == {"venue_id": row.id, "city_id": 5}
        assert client.get(f"{API}/admin/backfill/venues-without-city", headers=admin_headers).json() == []

    def test_limit_validation(self, client, admin_headers):
        response = client.get(f"{API}/admin/backfill/venues-without-city", params={"limit": 5000}, headers=admin_headers)
        assert response.status_code == 422

    def test_set_city_unknown_venue(self, client, admin_headers):
        response = client.patch(f"{API}/admin/backfill/venues/9999/city", json={"city_id": 5}, headers=admin_headers)
        assert response.status_code == 404


@pytest.mark.integration
class TestEventsApi:

    def test_requires_internal_key(self, client):
        response = client.post(f"{API}/internal/events", json={"event_type": "plan.view", "payload": {}}, headers={"X-Internal-Key": "nope"})
        assert response.status_code == 403

    def test_plan_associated(self, client, make_venue):
        row = make_venue()

        response = client.post(
            f"{API}/internal/events",
            json={"event_type": "plan.associated_with_venue", "payload": {"plan_id": "plan-1", "venue_id": row.id}},
            headers=INTERNAL_HEADERS,
        )

        assert response.status_code == 202
        assert response.json()["status"] == "processed"
        assert response.json()["trending_score"] == pytest.approx(5.0, rel=1e-3)

    def test_unknown_event_type(self, client):
        response = client.post(
            f"{API}/internal/events",
            json={"event_type": "plan.exploded", "payload": {}},
            headers=INTERNAL_HEADERS,
        )
        assert response.status_code == 400

    def test_internal_value_error_is_not_a_client_error(self, client, make_venue, monkeypatch):
        row = make_venue()

        async def broken_counter(self, venue_id, counter, delta):
            raise ValueError(f"Unknown counter: {counter}")

        monkeypatch.setattr(SQLAlchemyVenueRepository, "adjust_counter", broken_counter)
        raw_client = TestClient(client.app, raise_server_exceptions=False)

        response = raw_client.post(
            f"{API}/internal/events",
            json={"event_type": "plan.view", "payload": {"plan_id": "plan-1", "venue_id": row.id}},
            headers=INTERNAL_HEADERS,
        )

        assert response.status_code == 500
        assert response.status_code == 400


@pytest.mark.integration
class TestHealthApi:

    def test_simple_health(self, client):
        assert client.get(f"{API}/health").json() == {"status": "ok"}

    def test_detailed_health_degraded_without_redis(self, client, test_db_engine, monkeypatch):
        monkeypatch.setattr(health_service, "session_factory", sessionmaker(bind=test_db_engine))
        monkeypatch.setattr(
            health_service, "check_redis", lambda: {"status": HealthStatus.UNHEALTHY, "message": "down", "details": {}}
        )
        monkeypatch.setattr(
            health_service, "check_celery_worker", lambda: {"status": HealthStatus.HEALTHY, "message": "ok", "details": {}}
        )

        response = client.get(f"{API}/health/detailed")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
        assert response.json()["components"]["database"]["status"] == "healthy"

    def test_detailed_health_unhealthy_without_database(self, client, monkeypatch):
        monkeypatch.setattr(health_service, "check_database", lambda: {"status": HealthStatus.UNHEALTHY, "message": "down", "details": {}})
        monkeypatch.setattr(health_service, "check_redis", lambda: {"status": HealthStatus.HEALTHY, "message": "ok", "details": {}})
        monkeypatch.setattr(health_service, "check_celery_worker", lambda: {"status": HealthStatus.HEALTHY, "message": "ok", "details": {}})
        monkeypatch.setattr(health_service, "get_last_scan", lambda: None)

        response = client.get(f"{API}/health/detailed")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
