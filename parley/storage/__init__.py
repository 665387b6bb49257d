"""Result stores for persisted conversation results."""

from .base import BaseStorage
from .factory import create_storage, is_remote_storage_uri
from .gcs_storage import GCSStorage
from .local_storage import LocalStorage
from .s3_storage import S3Storage

__all__ = [
    "BaseStorage",
    "GCSStorage",
    "LocalStorage",
    "S3Storage",
    "create_storage",
    "is_remote_storage_uri",
]
