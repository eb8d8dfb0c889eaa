# backend/utils/storage.py
import logging
from pathlib import Path, PurePosixPath
from urllib.parse import urljoin

from config import settings
from services.errors import StorageError

logger = logging.getLogger(__name__)

PAYMENT_SCREENSHOTS_BUCKET = "payment-screenshots"
PRODUCT_IMAGES_BUCKET = "product-images"

# Prefix under which main.py mounts the storage directory
PUBLIC_PREFIX = "/storage"

# Stored extension comes from the validated type, never from the client filename
IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}
ALLOWED_IMAGE_TYPES = set(IMAGE_EXTENSIONS)


class ObjectStorage:
    """Bucketed file store with public URLs, backed by a local directory."""

    def __init__(self, root=None, base_url: str = None):
        self.root = Path(root or settings.STORAGE_DIR)
        self.base_url = base_url or settings.BACKEND_URL

    def _resolve(self, bucket: str, path: str) -> Path:
        key = PurePosixPath(path)
        if key.is_absolute() or ".." in key.parts or not key.parts:
            raise StorageError(f"Invalid object key: {path}")
        return self.root / bucket / Path(*key.parts)

    def upload(self, bucket: str, path: str, data: bytes) -> str:
        # Existing objects are never overwritten
        target = self._resolve(bucket, path)
        if target.exists():
            raise StorageError(f"Object already exists: {bucket}/{path}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "xb") as buffer:
                buffer.write(data)
        except OSError as e:
            logger.error("Storage upload failed for %s/%s: %s", bucket, path, e)
            raise StorageError(f"File save error: {e}")
        logger.info("Stored %s/%s (%d bytes)", bucket, path, len(data))
        return path

    def get_public_url(self, bucket: str, path: str) -> str:
        return urljoin(self.base_url, f"{PUBLIC_PREFIX}/{bucket}/{path}")


def image_extension(content_type: str) -> str:
    try:
        return IMAGE_EXTENSIONS[content_type]
    except KeyError:
        raise StorageError(f"Unsupported image type: {content_type}")
