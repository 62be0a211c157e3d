"""
Asset storage for case and treatment images.

The services store only the returned key and URL, never raw bytes.
The backend is chosen by WILDCARE['ASSET_STORAGE'].
"""
import io
import uuid
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.utils.module_loading import import_string
from minio import Minio
from minio.error import S3Error
from PIL import Image, UnidentifiedImageError

from apps.core.conf import wildcare_setting


class AssetStorageError(Exception):
    """Raised when the storage backend fails to store or delete an asset."""


@dataclass(frozen=True)
class StoredAsset:
    key: str
    url: str
    width: Optional[int]
    height: Optional[int]
    bytes: int


def generate_object_key(folder: str, filename: str) -> str:
    """Unique object key under `folder`, keeping a sanitized filename."""
    unique_id = uuid.uuid4().hex[:12]
    safe_filename = "".join(c for c in filename if c.isalnum() or c in "._-") or 'upload'
    return f"{folder.strip('/')}/{unique_id}_{safe_filename}"


def read_image_dimensions(content: bytes):
    """Return (width, height) of an image, or (None, None) for non-images."""
    try:
        with Image.open(io.BytesIO(content)) as img:
            return img.size
    except (UnidentifiedImageError, OSError):
        return None, None


class AssetStorage:
    """Storage backend interface."""
    
    def store(self, content: bytes, folder: str, filename: str, content_type: str = 'application/octet-stream') -> StoredAsset:
        raise NotImplementedError
    
    def delete(self, key: str) -> None:
        raise NotImplementedError


class MinioAssetStorage(AssetStorage):
    """MinIO / S3 backend."""
    
    def __init__(self, bucket: Optional[str] = None):
        self.bucket = bucket or settings.MINIO_ASSETS_BUCKET
    
    def _client(self):
        return Minio(
            settings.MINIO_ENDPOINT,
            access_key=settings.MINIO_ACCESS_KEY,
            secret_key=settings.MINIO_SECRET_KEY,
            secure=settings.MINIO_USE_SSL
        )
    
    def store(self, content, folder, filename, content_type='application/octet-stream'):
        key = generate_object_key(folder, filename)
        width, height = read_image_dimensions(content)
        try:
            self._client().put_object(
                bucket_name=self.bucket,
                object_name=key,
                data=io.BytesIO(content),
                length=len(content),
                content_type=content_type
            )
        except S3Error as e:
            raise AssetStorageError(f"Failed to store object in MinIO: {e}") from e
        url = f"{settings.MINIO_PUBLIC_URL.rstrip('/')}/{self.bucket}/{key}"
        return StoredAsset(key=key, url=url, width=width, height=height, bytes=len(content))
    
    def delete(self, key):
        try:
            self._client().remove_object(bucket_name=self.bucket, object_name=key)
        except S3Error as e:
            raise AssetStorageError(f"Failed to delete object from MinIO: {e}") from e


class InMemoryAssetStorage(AssetStorage):
    """
    Process-local backend for tests and local development.
    
    `fail_deletes` makes delete() raise, to exercise best-effort paths.
    """
    objects = {}
    fail_deletes = False
    
    def store(self, content, folder, filename, content_type='application/octet-stream'):
        key = generate_object_key(folder, filename)
        width, height = read_image_dimensions(content)
        self.objects[key] = content
        return StoredAsset(
            key=key,
            url=f"memory://{key}",
            width=width,
            height=height,
            bytes=len(content)
        )
    
    def delete(self, key):
        if self.fail_deletes:
            raise AssetStorageError(f"Simulated delete failure for {key}")
        self.objects.pop(key, None)
    
    @classmethod
    def reset(cls):
        cls.objects = {}
        cls.fail_deletes = False


def get_asset_storage() -> AssetStorage:
    """Instantiate the configured backend."""
    return import_string(wildcare_setting('ASSET_STORAGE'))()
