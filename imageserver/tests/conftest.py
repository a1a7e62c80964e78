"""
Test configuration for S3 Image Server unit tests.

Ensures the project root is on sys.path so the imageserver package can be
imported without installing it, and provides an in-memory object store.
"""

import asyncio
import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest
from httpx import ASGITransport, AsyncClient

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from imageserver.config import Settings  # noqa: E402
from imageserver.models.image import ObjectEntry, build_entry  # noqa: E402
from imageserver.server import create_app  # noqa: E402
from imageserver.services.storage_service import StoreUnavailable, list_prefix  # noqa: E402

SAMPLE_KEYS = ["a/1.jpg", "a/2.jpg", "b/1.jpg"]


class FakeGateway:
    """Stand-in for ObjectStoreGateway backed by a list of keys."""

    def __init__(self, keys: Optional[List[str]] = None, bucket: str = "test-bucket", region: str = "eu-west-1"):
        self.keys = list(keys or [])
        self.bucket = bucket
        self.region = region
        self.calls: List[str] = []
        self.fail = False
        self.gate: Optional[asyncio.Event] = None
        self.folder_failures: Dict[str, bool] = {}
        self.closed = False

    async def list_all(self, prefix: str = "") -> List[ObjectEntry]:
        self.calls.append(prefix)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail or self.folder_failures.get(prefix):
            raise StoreUnavailable("store is down")
        key_prefix = list_prefix(prefix)
        return [
            build_entry(self.bucket, self.region, key)
            for key in self.keys
            if key.startswith(key_prefix)
        ]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings():
    return Settings(
        bucket="test-bucket",
        region="eu-west-1",
        access_key="AKIATEST",
        secret_key="secret",
        refresh_interval=45,
        request_logging_enabled=False,
    )


@pytest.fixture
def gateway():
    return FakeGateway(SAMPLE_KEYS)


@pytest.fixture
def app(settings, gateway):
    return create_app(settings, gateway=gateway)


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    await app.state.scheduler.stop()
