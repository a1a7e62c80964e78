"""
Read side of the image cache used by the API routes.
"""

from __future__ import annotations

from loguru import logger

from .cache_service import ImageCache, Listing
from .refresh_scheduler import RefreshScheduler


class ImageQueryService:
    """Answer listing requests from the cache without touching the store."""

    def __init__(self, cache: ImageCache, scheduler: RefreshScheduler) -> None:
        self._cache = cache
        self._scheduler = scheduler

    def list_images(self) -> Listing:
        return self._cache.get_full()

    def list_folder(self, name: str) -> Listing:
        """
        Return the cached listing for ``name``.

        The first request for a folder starts populating it in the background
        and returns an empty listing straight away.
        """
        listing = self._cache.get_folder(name)
        if listing is not None:
            return listing
        logger.info(f'Folder "{name}" not cached yet; fetching in background')
        self._scheduler.dispatch_folder(name)
        return ()
