"""
Object storage gateway.
Lists the contents of the configured S3 bucket through aiobotocore.
"""

from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack
from typing import Any, Dict, List, Optional

from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from ..config import LIST_PAGE_SIZE, Settings
from ..models.image import ObjectEntry, build_entry


class StorageError(Exception):
    """Raised when an object storage operation fails."""


class StoreUnavailable(StorageError):
    """The backing store could not be listed (network, auth, throttling, timeout)."""


def _normalise_endpoint(endpoint: str) -> str:
    if endpoint.startswith("http://") or endpoint.startswith("https://"):
        return endpoint.rstrip("/")
    return f"https://{endpoint.rstrip('/')}"


def list_prefix(folder: str) -> str:
    """Map a folder name to the key prefix used to list it; '' lists everything."""
    if not folder:
        return ""
    return f"{folder}/"


class ObjectStoreGateway:
    """Drain paginated ``list_objects_v2`` calls into flat lists of entries."""

    def __init__(self, settings: Settings, client: Any = None) -> None:
        self._settings = settings
        self._client = client
        self._owns_client = client is None
        self._exit_stack: Optional[AsyncExitStack] = None
        self._lock = asyncio.Lock()

    @property
    def bucket(self) -> str:
        return self._settings.bucket

    def _client_config(self) -> Config:
        config_kwargs: Dict[str, Any] = {
            "signature_version": "s3v4",
            "max_pool_connections": 50,
            "retries": {"max_attempts": 3, "mode": "adaptive"},
        }
        if self._settings.force_path_style:
            config_kwargs["s3"] = {"addressing_style": "path"}
        return Config(**config_kwargs)

    async def _get_client(self):
        """Get or create the shared async S3 client."""
        if self._client is not None:
            return self._client

        async with self._lock:
            if self._client is not None:
                return self._client

            from aiobotocore.session import get_session

            session = get_session()
            create_kwargs: Dict[str, Any] = {
                "region_name": self._settings.region,
                "aws_access_key_id": self._settings.access_key,
                "aws_secret_access_key": self._settings.secret_key,
                "config": self._client_config(),
            }
            if self._settings.endpoint_url:
                create_kwargs["endpoint_url"] = _normalise_endpoint(
                    self._settings.endpoint_url
                )

            stack = AsyncExitStack()
            try:
                client = await stack.enter_async_context(
                    session.create_client("s3", **create_kwargs)
                )
            except Exception:
                await stack.aclose()
                raise

            self._client = client
            self._exit_stack = stack
            logger.info(f"S3 client ready for bucket '{self.bucket}'")
            return self._client

    async def _reset_client(self) -> None:
        """Close and clear an owned client so the next call builds a fresh one."""
        stack = self._exit_stack
        self._exit_stack = None
        if self._owns_client:
            self._client = None
        if stack is not None:
            try:
                await stack.aclose()
            except Exception as exc:
                logger.warning(f"Failed to close S3 client cleanly: {exc}")

    async def close(self) -> None:
        await self._reset_client()

    def _entry(self, key: str) -> ObjectEntry:
        return build_entry(
            self._settings.bucket,
            self._settings.region,
            key,
            self._settings.public_url,
        )

    async def list_all(self, prefix: str = "") -> List[ObjectEntry]:
        """
        Return every object under ``prefix`` in the order the store yields them.

        Args:
            prefix: Folder name to filter on. Empty means the whole bucket;
                otherwise only keys starting with ``prefix + "/"`` are listed.

        Raises:
            StoreUnavailable: if any page of the listing fails.
        """
        key_prefix = list_prefix(prefix)
        items: List[ObjectEntry] = []
        try:
            client = await self._get_client()
            paginator = client.get_paginator("list_objects_v2")
            async for page in paginator.paginate(
                Bucket=self.bucket,
                Prefix=key_prefix,
                PaginationConfig={"PageSize": LIST_PAGE_SIZE},
            ):
                for obj in page.get("Contents", []):
                    key = obj.get("Key")
                    if key:
                        items.append(self._entry(key))
        except AttributeError as exc:
            await self._reset_client()
            logger.exception(f"S3 client missing expected attribute during listing: {exc}")
            raise StoreUnavailable("Object storage client is not usable.") from exc
        except (BotoCoreError, ClientError, asyncio.TimeoutError) as exc:
            logger.error(
                f"Failed to list bucket '{self.bucket}' with prefix '{key_prefix}': {exc}"
            )
            raise StoreUnavailable("Listing objects from object storage failed.") from exc
        except Exception as exc:
            logger.exception(
                f"Unexpected error listing bucket '{self.bucket}' with prefix '{key_prefix}': {exc}"
            )
            raise StoreUnavailable("Listing objects from object storage failed.") from exc
        return items
