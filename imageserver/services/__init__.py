"""
Services package for the S3 Image Server.
Contains the storage gateway, the listing cache and its refresh machinery.
"""

from .cache_service import ImageCache
from .query_service import ImageQueryService
from .refresh_scheduler import RefreshScheduler
from .storage_service import ObjectStoreGateway, StorageError, StoreUnavailable

__all__ = [
    "ImageCache",
    "ImageQueryService",
    "ObjectStoreGateway",
    "RefreshScheduler",
    "StorageError",
    "StoreUnavailable",
]
