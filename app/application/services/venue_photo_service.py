"""Venue photo upload and moderation."""
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from app.application.dto.venue_dto import photo_to_dict
from app.application.ports.places import ImageStorage
from app.application.services.venue_cache_service import VenueCacheService
from app.config import settings
from app.constants import PHOTO_SOURCE_ADMIN, PHOTO_SOURCE_GOOGLE, PHOTO_SOURCE_USER
from app.domain.entities.venue_photo import VenuePhoto
from app.domain.exceptions import (
    PermissionDeniedError,
    PhotoNotFoundError,
    VenueNotFoundError,
    VenueValidationError,
)
from app.domain.repositories.venue_photo_repository import VenuePhotoRepository
from app.domain.repositories.venue_repository import VenueRepository
from app.domain.value_objects.roles import Actor
from app.infrastructure.external_apis.gcs_client import ImageProcessor

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/png", "image/webp", "image/gif")
_EXTENSIONS = {"image/jpeg": "jpg", "image/png": "png", "image/webp": "webp", "image/gif": "gif"}


class VenuePhotoService:
    """Photo CRUD with role checks. At most one photo per venue is primary."""

    def __init__(
        self,
        photo_repo: VenuePhotoRepository,
        venue_repo: VenueRepository,
        storage: ImageStorage,
        cache_service: VenueCacheService,
        processor: Optional[ImageProcessor] = None,
    ):
        self.photo_repo = photo_repo
        self.venue_repo = venue_repo
        self.storage = storage
        self.cache_service = cache_service
        self.processor = processor or ImageProcessor()

    async def _get_photo(self, photo_id: int, venue_id: Optional[int] = None) -> VenuePhoto:
        photo = await self.photo_repo.get_by_id(photo_id)
        if not photo or (venue_id is not None and photo.venue_id != venue_id):
            raise PhotoNotFoundError(photo_id, venue_id)
        return photo

    async def _invalidate(self, venue_id: int):
        for source in (None, PHOTO_SOURCE_ADMIN, PHOTO_SOURCE_USER, PHOTO_SOURCE_GOOGLE):
            key = await self.cache_service.make_key("admin_photos", {"venue_id": venue_id, "source": source or "all"})
            await self.cache_service.cache.delete_key(key)

    def _store_upload(self, venue_id: int, image_bytes: bytes, content_type: str, etag: str) -> Optional[Dict[str, str]]:
        """Upload the original plus variants. Returns url per size or None."""
        variants = self.processor.create_variants(image_bytes)
        prefix = f"venues/{venue_id}/{etag}"
        urls = {}

        original_url = self.storage.upload_image(
            image_bytes, f"{prefix}/original.{_EXTENSIONS[content_type]}", content_type
        )
        if not original_url:
            return None
        urls["original"] = original_url

        for name, (data, _width, _height) in variants.items():
            url = self.storage.upload_image(data, f"{prefix}/{name}.webp", "image/webp")
            if not url:
                return None
            urls[name] = url
        return urls

    async def add_photo(
        self,
        venue_id: int,
        actor: Actor,
        image_bytes: Optional[bytes] = None,
        content_type: Optional[str] = None,
        photo_url: Optional[str] = None,
        caption: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """Add a photo from uploaded bytes or an existing URL.

        Photos from admins and venue owners are approved immediately.

        Returns:
            The photo, or None if storage failed

        Raises:
            VenueNotFoundError: If the venue does not exist
            VenueValidationError: If neither bytes nor URL are usable
        """
        if not await self.venue_repo.get_by_id(venue_id):
            raise VenueNotFoundError(venue_id)

        privileged = actor.can_manage_photos
        photo = VenuePhoto(
            id=None,
            venue_id=venue_id,
            photo_url=photo_url or "",
            user_id=actor.user_id,
            caption=caption,
            is_approved=privileged,
            source=PHOTO_SOURCE_ADMIN if privileged else PHOTO_SOURCE_USER,
            order=await self.photo_repo.next_order(venue_id),
        )

        if image_bytes is not None:
            if len(image_bytes) > MAX_UPLOAD_BYTES:
                raise VenueValidationError(f"File size exceeds the limit of {MAX_UPLOAD_BYTES // (1024 * 1024)}MB")
            if content_type not in ALLOWED_CONTENT_TYPES:
                raise VenueValidationError(f"File type {content_type} is not allowed")
            photo.etag = self.processor.compute_etag(image_bytes)
            try:
                urls = self._store_upload(venue_id, image_bytes, content_type, photo.etag)
            except ValueError as e:
                # Pillow could not decode the upload
                raise VenueValidationError(str(e))
            if urls is None:
                logger.error(f"Photo upload failed for venue {venue_id}")
                return None
            photo.photo_url = urls["original"]
            photo.thumbnail_url = urls.get("thumbnail")
            photo.medium_url = urls.get("medium")
            photo.large_url = urls.get("large")
        elif photo_url:
            photo.thumbnail_url = photo.medium_url = photo.large_url = photo_url
        else:
            raise VenueValidationError("Either an image file or a photo URL is required")

        created = await self.photo_repo.create(photo)
        await self._invalidate(venue_id)
        logger.info(f"✓ Photo {created.id} added to venue {venue_id} by {actor.user_id} (approved={created.is_approved})")
        return photo_to_dict(created)

    async def set_primary(self, venue_id: int, photo_id: int, actor: Actor) -> Dict[str, Any]:
        """Make one photo the venue's only primary photo.

        Raises:
            PermissionDeniedError: Unless admin or venue owner
            PhotoNotFoundError: If the photo is not the venue's
        """
        if not actor.can_manage_photos:
            raise PermissionDeniedError("Only admins and venue owners can set primary photos")
        await self._get_photo(photo_id, venue_id)
        await self.photo_repo.set_primary(venue_id, photo_id)
        await self._invalidate(venue_id)
        return photo_to_dict(await self._get_photo(photo_id, venue_id))

    async def approve_photo(self, photo_id: int, actor: Actor) -> Dict[str, Any]:
        if not actor.can_moderate_photos:
            raise PermissionDeniedError("You are not authorized to approve photos")
        photo = await self._get_photo(photo_id)
        updated = await self.photo_repo.update(photo_id, is_approved=True)
        await self._invalidate(photo.venue_id)
        return photo_to_dict(updated)

    async def reject_photo(self, photo_id: int, actor: Actor) -> Dict[str, Any]:
        """Hide a photo from public listings; a rejected photo cannot stay primary."""
        if not actor.can_moderate_photos:
            raise PermissionDeniedError("You are not authorized to reject photos")
        photo = await self._get_photo(photo_id)
        updated = await self.photo_repo.update(photo_id, is_approved=False, is_primary=False)
        await self._invalidate(photo.venue_id)
        return photo_to_dict(updated)

    async def delete_photo(self, photo_id: int, actor: Actor, venue_id: Optional[int] = None) -> bool:
        """Delete a photo and its stored files.

        Raises:
            PermissionDeniedError: Unless privileged or the uploader
        """
        photo = await self._get_photo(photo_id, venue_id)
        if not actor.can_manage_photos and photo.user_id != actor.user_id:
            raise PermissionDeniedError("You are not authorized to delete this photo")

        if photo.etag:
            self.storage.delete_prefix(f"venues/{photo.venue_id}/{photo.etag}/")
        deleted = await self.photo_repo.delete(photo_id)
        await self._invalidate(photo.venue_id)
        return deleted

    async def bulk_approve(self, photo_ids: Sequence[int], actor: Actor) -> Dict[str, Any]:
        """Approve several photos; one failure does not stop the rest."""
        if not actor.can_moderate_photos:
            raise PermissionDeniedError("You are not authorized to perform bulk photo operations")

        approved: List[int] = []
        failed: List[int] = []
        venue_ids = set()
        for photo_id in photo_ids:
            try:
                photo = await self._get_photo(photo_id)
                await self.photo_repo.update(photo_id, is_approved=True)
                approved.append(photo_id)
                venue_ids.add(photo.venue_id)
            except Exception as e:
                failed.append(photo_id)
                logger.error(f"Failed to approve photo {photo_id}: {e}")

        for venue_id in venue_ids:
            await self._invalidate(venue_id)
        logger.info(f"Bulk approve: {len(approved)} approved, {len(failed)} failed")
        return {"approved": approved, "failed": failed}

    async def update_order(self, venue_id: int, orders: Sequence[Tuple[int, int]], actor: Actor) -> List[Dict[str, Any]]:
        """Set display order for photos of one venue.

        Raises:
            PhotoNotFoundError: If any photo is not the venue's
        """
        if not actor.can_manage_photos:
            raise PermissionDeniedError("Only admins and venue owners can reorder photos")
        for photo_id, _order in orders:
            await self._get_photo(photo_id, venue_id)
        for photo_id, order in orders:
            await self.photo_repo.update(photo_id, order=order)
        await self._invalidate(venue_id)
        return await self.list_photos(venue_id, approved_only=False)

    async def list_photos(self, venue_id: int, approved_only: bool = True) -> List[Dict[str, Any]]:
        photos = await self.photo_repo.list_by_venue(venue_id, approved_only=approved_only)
        return [photo_to_dict(p) for p in photos]

    async def admin_list_photos(self, venue_id: int, source: Optional[str] = None) -> List[Dict[str, Any]]:
        """Every photo of a venue (optionally one source), cached briefly."""
        params = {"venue_id": venue_id, "source": source or "all"}
        cached = await self.cache_service.get("admin_photos", params)
        if cached is not None:
            return cached

        photos = await self.list_photos(venue_id, approved_only=False)
        if source:
            photos = [p for p in photos if p["source"] == source]
        await self.cache_service.set("admin_photos", photos, settings.CACHE_TTL_ADMIN_PHOTOS, params)
        return photos
