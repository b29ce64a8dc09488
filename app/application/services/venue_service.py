"""Venue reads, engagement and admin edits."""
import dataclasses
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.application.dto.venue_dto import (
    admin_venue_to_dict,
    paginated,
    venue_to_dict,
)
from app.application.services.trending_service import TrendingService
from app.application.services.venue_cache_service import VenueCacheService
from app.application.services.venue_merger import LISTING_EDITABLE_FIELDS, apply_admin_update
from app.config import settings
from app.constants import (
    CACHE_KEY_TRENDING_LIST,
    VENUE_STATUS_ACTIVE,
    VENUE_STATUS_PENDING,
    VENUE_STATUSES,
)
from app.core.background import spawn_background
from app.domain.entities.venue import Venue, VenueHours
from app.domain.exceptions import PermissionDeniedError, VenueNotFoundError, VenueValidationError
from app.domain.repositories.venue_repository import VenueRepository
from app.domain.value_objects.coordinates import Coordinates
from app.domain.value_objects.roles import Actor
from app.infrastructure.external_apis.cache_client import RedisCache

logger = logging.getLogger(__name__)


def recently_viewed_key(user_id: str) -> str:
    return f"user:{user_id}:recently_viewed_venues"


def recent_searches_key(user_id: str) -> str:
    return f"user:{user_id}:recent_venue_searches"


class VenueService:
    """Venue detail, follow, text search, trending and admin edits."""

    def __init__(
        self,
        venue_repo: VenueRepository,
        trending_service: TrendingService,
        cache: RedisCache,
        cache_service: VenueCacheService,
    ):
        self.venue_repo = venue_repo
        self.trending = trending_service
        self.cache = cache
        self.cache_service = cache_service

    async def _get_or_raise(self, venue_id: int) -> Venue:
        venue = await self.venue_repo.get_by_id(venue_id)
        if not venue:
            raise VenueNotFoundError(venue_id)
        return venue

    # ===== Detail & views =====

    async def get_venue(self, venue_id: int, actor: Optional[Actor] = None) -> Dict[str, Any]:
        """Get a venue.

        With an actor, records the view in the background (view count,
        trending score, recently viewed list).

        Raises:
            VenueNotFoundError: If the venue does not exist
        """
        venue = await self._get_or_raise(venue_id)
        if actor is None:
            return venue_to_dict(venue)

        spawn_background(self._record_view(venue_id, actor.user_id), name=f"venue-view-{venue_id}")
        is_following = await self.venue_repo.is_follower(venue_id, actor.user_id)
        return venue_to_dict(venue, is_following=is_following)

    async def _record_view(self, venue_id: int, user_id: str):
        try:
            await self.venue_repo.adjust_counter(venue_id, "view_count", 1)
        except Exception as e:
            logger.error(f"Failed view count increment for venue {venue_id}: {e}")
        await self.trending.update_venue_trending_score(venue_id)
        await self.cache.push_recent(
            recently_viewed_key(user_id),
            str(venue_id),
            settings.RECENTLY_VIEWED_LIMIT,
        )

    async def get_recently_viewed(self, user_id: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Most recently viewed venues first."""
        limit = limit or settings.RECENTLY_VIEWED_LIMIT
        raw_ids = await self.cache.get_list(recently_viewed_key(user_id), limit)
        venue_ids = []
        for raw in raw_ids:
            try:
                venue_ids.append(int(raw))
            except (TypeError, ValueError):
                logger.warning(f"Ignoring malformed recently viewed entry {raw!r} for user {user_id}")
        venues = await self.venue_repo.get_by_ids(venue_ids)
        return [venue_to_dict(v) for v in venues]

    # ===== Follow =====

    async def follow_venue(self, venue_id: int, actor: Actor) -> Dict[str, Any]:
        """Follow a venue. Following twice is a no-op.

        Raises:
            VenueNotFoundError: If the venue does not exist
        """
        venue = await self._get_or_raise(venue_id)
        follower_count = venue.follower_count
        if await self.venue_repo.add_follower(venue_id, actor.user_id):
            follower_count = await self.venue_repo.adjust_counter(venue_id, "follower_count", 1)
            spawn_background(self.trending.update_venue_trending_score(venue_id))
            logger.info(f"User {actor.user_id} followed venue {venue_id}")
        else:
            logger.debug(f"User {actor.user_id} already follows venue {venue_id}")
        return {"venue_id": venue_id, "is_following": True, "follower_count": follower_count}

    async def unfollow_venue(self, venue_id: int, actor: Actor) -> Dict[str, Any]:
        """Unfollow a venue. The follower count never drops below zero.

        Raises:
            VenueNotFoundError: If the venue does not exist
        """
        venue = await self._get_or_raise(venue_id)
        follower_count = venue.follower_count
        if await self.venue_repo.remove_follower(venue_id, actor.user_id):
            follower_count = await self.venue_repo.adjust_counter(venue_id, "follower_count", -1)
            spawn_background(self.trending.update_venue_trending_score(venue_id))
            logger.info(f"User {actor.user_id} unfollowed venue {venue_id}")
        else:
            logger.warning(f"User {actor.user_id} tried to unfollow venue {venue_id} without following it")
        return {"venue_id": venue_id, "is_following": False, "follower_count": follower_count}

    async def is_following(self, venue_id: int, user_id: str) -> bool:
        return await self.venue_repo.is_follower(venue_id, user_id)

    # ===== Text search =====

    async def search_venues_by_text(
        self,
        query: str,
        limit: Optional[int] = None,
        actor: Optional[Actor] = None,
    ) -> Dict[str, Any]:
        """Relevance-ordered match on name, description and address.

        Results are cached briefly; the query is recorded in the actor's
        recent searches.
        """
        limit = limit or settings.TEXT_SEARCH_LIMIT
        query = (query or "").strip()
        if actor and query:
            await self.cache.push_recent(
                recent_searches_key(actor.user_id),
                query,
                settings.RECENT_SEARCHES_LIMIT,
                settings.CACHE_TTL_RECENT_SEARCHES,
            )

        params = {"q": query.lower(), "limit": limit}
        cached = await self.cache_service.get("text_search", params)
        if cached is not None:
            logger.debug(f"Text search cache hit for '{query}'")
            return cached

        venues = await self.venue_repo.search_by_text(query, limit) if query else []
        result = {"items": [venue_to_dict(v) for v in venues], "total": len(venues)}
        await self.cache_service.set("text_search", result, settings.CACHE_TTL_TEXT_SEARCH, params)
        return result

    async def get_recent_searches(self, user_id: str, limit: Optional[int] = None) -> List[str]:
        return await self.cache.get_list(recent_searches_key(user_id), limit or settings.RECENT_SEARCHES_LIMIT)

    # ===== Trending & discover =====

    async def get_trending_venues(self, page: int = 1, limit: Optional[int] = None) -> Dict[str, Any]:
        """Active venues by trending score, paginated."""
        limit = limit or settings.DEFAULT_PAGE_SIZE
        page = max(1, page)
        params = {"page": page, "limit": limit}
        cached = await self.cache_service.get(CACHE_KEY_TRENDING_LIST, params)
        if cached is not None:
            return cached

        venues, total = await self.venue_repo.list_trending((page - 1) * limit, limit)
        result = paginated([venue_to_dict(v) for v in venues], total, page, limit)
        await self.cache_service.set(CACHE_KEY_TRENDING_LIST, result, settings.CACHE_TTL_TRENDING_LIST, params)
        return result

    async def get_discover(self, user_id: Optional[str] = None) -> Dict[str, Any]:
        """Recently viewed (for a user) plus the first page of trending venues."""
        recently_viewed: List[Dict[str, Any]] = []
        if user_id:
            try:
                recently_viewed = await self.get_recently_viewed(user_id)
            except Exception as e:
                logger.error(f"Failed to fetch recently viewed for discover: {e}")

        try:
            trending = await self.get_trending_venues(1, settings.DISCOVER_TRENDING_LIMIT)
        except Exception as e:
            logger.error(f"Failed to fetch trending venues for discover: {e}")
            trending = paginated([], 0, 1, settings.DISCOVER_TRENDING_LIMIT)

        return {"recently_viewed": recently_viewed, "trending_venues": trending}

    # ===== Listing edits =====

    @staticmethod
    def _validate_listing(venue: Venue):
        if not venue.is_valid():
            raise VenueValidationError("Venue name is required")
        if (venue.latitude is None) != (venue.longitude is None):
            raise VenueValidationError("Latitude and longitude must be given together")
        if venue.latitude is not None:
            try:
                Coordinates(latitude=venue.latitude, longitude=venue.longitude)
            except ValueError as e:
                raise VenueValidationError(str(e))

    async def create_venue(
        self,
        actor: Actor,
        fields: Dict[str, Any],
        venue_type_names: Optional[List[str]] = None,
        hours: Optional[List[VenueHours]] = None,
    ) -> Dict[str, Any]:
        """Create a venue listing by hand.

        Listings created by admins are published immediately. Venue owners'
        listings start as pending and wait for moderation.

        Raises:
            PermissionDeniedError: Unless admin or venue owner
            VenueValidationError: On invalid listing data
        """
        if not actor.can_manage_venues:
            raise PermissionDeniedError("Only admins and venue owners can create venues")
        unknown = [k for k in fields if k not in LISTING_EDITABLE_FIELDS]
        if unknown:
            raise VenueValidationError(f"Fields not editable: {', '.join(sorted(unknown))}")

        values = dict(fields)
        values.setdefault("name", None)
        venue = Venue(
            id=None,
            status=VENUE_STATUS_ACTIVE if actor.is_admin else VENUE_STATUS_PENDING,
            last_modified_by=actor.user_id,
            last_modified_at=datetime.utcnow(),
            **values,
        )
        self._validate_listing(venue)

        saved = await self.venue_repo.save(venue, venue_type_names=venue_type_names, hours=hours or [])
        await self.cache_service.invalidate_all()
        logger.info(f"✓ Venue {saved.id} created by {actor.user_id} ({actor.role.value}), status {saved.status}")
        return venue_to_dict(saved)

    async def update_venue(
        self,
        venue_id: int,
        actor: Actor,
        fields: Dict[str, Any],
        venue_type_names: Optional[List[str]] = None,
        hours: Optional[List[VenueHours]] = None,
    ) -> Dict[str, Any]:
        """Edit a venue's listing details.

        Edited fields are recorded as overrides, so a later Google refresh
        does not undo them.

        Raises:
            PermissionDeniedError: Unless admin or venue owner
            VenueNotFoundError: If the venue does not exist
            VenueValidationError: On non-editable fields or nothing to change
        """
        if not actor.can_manage_venues:
            raise PermissionDeniedError("Only admins and venue owners can update venues")
        if not fields and venue_type_names is None and hours is None:
            raise VenueValidationError("No changes supplied")

        venue = await self._get_or_raise(venue_id)
        if fields:
            venue = apply_admin_update(venue, fields, actor.user_id, allowed_fields=LISTING_EDITABLE_FIELDS)
        else:
            venue = dataclasses.replace(venue, last_modified_by=actor.user_id, last_modified_at=datetime.utcnow())
        self._validate_listing(venue)

        saved = await self.venue_repo.save(venue, venue_type_names=venue_type_names, hours=hours)
        await self.cache_service.invalidate_all()
        logger.info(f"Venue {venue_id} updated by {actor.user_id}: {sorted(fields)}")
        return venue_to_dict(saved)

    # ===== Admin =====

    async def admin_update_venue(self, venue_id: int, updates: Dict[str, Any], admin_id: str) -> Dict[str, Any]:
        """Apply admin edits; each edited field survives later Google refreshes.

        Raises:
            VenueNotFoundError: If the venue does not exist
            ValueError: If a field is not editable
        """
        venue = await self._get_or_raise(venue_id)
        updated = apply_admin_update(venue, updates, admin_id)
        saved = await self.venue_repo.save(updated)
        await self.cache_service.invalidate_all()
        logger.info(f"✓ Admin {admin_id} updated venue {venue_id}: {sorted(updates)}")
        return admin_venue_to_dict(saved)

    async def set_status(self, venue_id: int, status: str, admin_id: str) -> Dict[str, Any]:
        """Moderate a venue (pending/active/rejected/closed).

        Raises:
            VenueNotFoundError: If the venue does not exist
            VenueValidationError: If the status is unknown
        """
        if status not in VENUE_STATUSES:
            raise VenueValidationError(f"Invalid venue status: {status}")
        venue = await self._get_or_raise(venue_id)
        # Recorded as an override so a rescan cannot restore an earlier admin status
        overrides = dict(venue.admin_overrides or {})
        overrides["status"] = status
        updated = dataclasses.replace(
            venue,
            status=status,
            admin_overrides=overrides,
            last_modified_by=admin_id,
            last_modified_at=datetime.utcnow(),
        )
        saved = await self.venue_repo.save(updated)
        await self.cache_service.invalidate_all()
        logger.info(f"Venue {venue_id} status set to {status} by {admin_id}")
        return admin_venue_to_dict(saved)

    async def list_venues_with_overrides(self, limit: Optional[int] = None, offset: int = 0) -> Dict[str, Any]:
        """Venues carrying admin overrides, most recently edited first."""
        limit = limit or settings.DEFAULT_PAGE_SIZE
        params = {"limit": limit, "offset": offset}
        cached = await self.cache_service.get("admin_list", params)
        if cached is not None:
            return cached

        venues, total = await self.venue_repo.list_with_admin_overrides(offset, limit)
        result = {"items": [admin_venue_to_dict(v) for v in venues], "total": total}
        await self.cache_service.set("admin_list", result, settings.CACHE_TTL_ADMIN_OVERRIDES, params)
        return result
