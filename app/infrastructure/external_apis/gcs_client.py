"""Google Cloud Storage client for venue photo uploads and size variants."""
import hashlib
import logging
import os
from typing import Dict, Optional, Tuple
from io import BytesIO

from google.cloud import storage
from google.cloud.exceptions import GoogleCloudError
from PIL import Image, ImageOps

from app.constants import IMAGE_VARIANTS
from app.core.settings import settings

logger = logging.getLogger(__name__)


class GCSImageClient:
    """Client for uploading and managing venue photos in Google Cloud Storage."""

    def __init__(self, bucket_name: Optional[str] = None, cdn_url: Optional[str] = None):
        self.bucket_name = bucket_name or settings.GCS_BUCKET_NAME
        self.cdn_url = cdn_url or settings.GCS_CDN_URL
        self._client: Optional[storage.Client] = None
        self._bucket: Optional[storage.Bucket] = None

    @property
    def client(self) -> storage.Client:
        """Lazy initialization of GCS client."""
        if self._client is None:
            creds_path = os.getenv('GOOGLE_APPLICATION_CREDENTIALS')
            if creds_path and os.path.exists(creds_path):
                self._client = storage.Client.from_service_account_json(
                    creds_path,
                    project=settings.GCS_PROJECT_ID
                )
            elif settings.GCS_PROJECT_ID:
                self._client = storage.Client(project=settings.GCS_PROJECT_ID)
            else:
                # Use default credentials
                self._client = storage.Client()
        return self._client

    @property
    def bucket(self) -> storage.Bucket:
        """Lazy initialization of bucket."""
        if self._bucket is None:
            self._bucket = self.client.bucket(self.bucket_name)
        return self._bucket

    def upload_image(
        self,
        image_bytes: bytes,
        blob_path: str,
        content_type: str = "image/webp"
    ) -> Optional[str]:
        """Upload image to GCS bucket.

        Args:
            image_bytes: Raw image bytes
            blob_path: Path within bucket (e.g., 'venues/12/ab12cd/medium.webp')
            content_type: MIME type

        Returns:
            CDN URL or None if upload failed
        """
        try:
            blob = self.bucket.blob(blob_path)
            blob.cache_control = "public, max-age=31536000"
            blob.upload_from_string(image_bytes, content_type=content_type)

            cdn_url = f"{self.cdn_url}/{blob_path}"
            logger.info(f"Uploaded image to GCS: {cdn_url}")
            return cdn_url

        except GoogleCloudError as e:
            logger.error(f"GCS upload failed for {blob_path}: {e}")
            return None

    def delete_prefix(self, prefix: str) -> int:
        """Delete every blob under a path prefix.

        Returns:
            Number of blobs deleted (0 on error)
        """
        deleted = 0
        try:
            for blob in self.client.list_blobs(self.bucket_name, prefix=prefix):
                blob.delete()
                deleted += 1
            logger.info(f"Deleted {deleted} blobs under {prefix}")
        except GoogleCloudError as e:
            logger.error(f"GCS delete failed for {prefix}: {e}")
        return deleted

    def get_blob_url(self, blob_path: str) -> str:
        return f"{self.cdn_url}/{blob_path}"


class ImageProcessor:
    """Produce fixed-size WebP variants of an uploaded photo."""

    @staticmethod
    def compute_etag(image_bytes: bytes) -> str:
        return hashlib.md5(image_bytes).hexdigest()

    @staticmethod
    def _to_rgb(img: Image.Image) -> Image.Image:
        # Flatten transparency onto white
        if img.mode in ('RGBA', 'P', 'LA'):
            background = Image.new('RGB', img.size, (255, 255, 255))
            if img.mode != 'RGBA':
                img = img.convert('RGBA')
            background.paste(img, mask=img.split()[-1])
            return background
        if img.mode != 'RGB':
            return img.convert('RGB')
        return img

    @staticmethod
    def resize(img: Image.Image, width: int, height: int, fit: str) -> Image.Image:
        """Resize to a variant box.

        ``cover`` crops to exactly width x height; ``inside`` keeps the aspect
        ratio within the box and never enlarges.
        """
        if fit == "cover":
            return ImageOps.fit(img, (width, height), Image.Resampling.LANCZOS)
        resized = img.copy()
        resized.thumbnail((width, height), Image.Resampling.LANCZOS)
        return resized

    @classmethod
    def create_variants(cls, image_bytes: bytes, quality: int = 85) -> Dict[str, Tuple[bytes, int, int]]:
        """Build every configured variant.

        Returns:
            variant name -> (webp_bytes, width, height)

        Raises:
            ValueError: If the bytes are not a readable image
        """
        try:
            img = Image.open(BytesIO(image_bytes))
            img.load()
        except Exception as e:
            raise ValueError(f"Failed to process image: {e}")

        img = cls._to_rgb(img)
        variants: Dict[str, Tuple[bytes, int, int]] = {}
        for name, (width, height, fit) in IMAGE_VARIANTS.items():
            resized = cls.resize(img, width, height, fit)
            output = BytesIO()
            resized.save(output, format='WEBP', quality=quality, method=6)
            variants[name] = (output.getvalue(), resized.width, resized.height)
        return variants
