"""
In-memory cache of bucket listings.

Holds the full bucket listing and one listing per requested folder. Each
slot is replaced by a single assignment of an immutable tuple, so readers
always see either the previous or the new listing, never a mix.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from loguru import logger

from ..models.image import ObjectEntry
from .storage_service import ObjectStoreGateway, StoreUnavailable

Listing = Tuple[ObjectEntry, ...]


class ImageCache:
    """Own the cached listings; the only writer of both slots."""

    def __init__(self, gateway: ObjectStoreGateway) -> None:
        self._gateway = gateway
        self._full: Listing = ()
        self._folders: Dict[str, Listing] = {}

    def get_full(self) -> Listing:
        return self._full

    def get_folder(self, name: str) -> Optional[Listing]:
        """Return the cached folder listing, or None if it was never fetched."""
        return self._folders.get(name)

    def folder_names(self) -> Tuple[str, ...]:
        """Snapshot of every folder currently cached."""
        return tuple(self._folders)

    async def refresh_full(self) -> bool:
        """Replace the full listing; keep the old one if the store fails."""
        try:
            entries = await self._gateway.list_all("")
        except StoreUnavailable as exc:
            logger.error(f"Failed to refresh S3 images: {exc}")
            return False
        except Exception as exc:
            logger.exception(f"Unexpected error refreshing S3 images: {exc}")
            return False

        self._full = tuple(entries)
        logger.info(f"Cached {len(self._full)} images")
        return True

    async def refresh_folder(self, name: str) -> bool:
        """Replace one folder listing; an absent folder stays absent on failure."""
        try:
            entries = await self._gateway.list_all(name)
        except StoreUnavailable as exc:
            logger.error(f'Failed to refresh folder "{name}": {exc}')
            return False
        except Exception as exc:
            logger.exception(f'Unexpected error refreshing folder "{name}": {exc}')
            return False

        listing = tuple(entries)
        self._folders[name] = listing
        logger.info(f'Cached {len(listing)} images for folder "{name}"')
        return True
