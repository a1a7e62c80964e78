"""
Unit tests for the query service's lazy folder population.
"""

import pytest

from imageserver.services.cache_service import ImageCache
from imageserver.services.query_service import ImageQueryService
from imageserver.services.refresh_scheduler import RefreshScheduler

pytestmark = pytest.mark.anyio


@pytest.fixture
def services(gateway):
    cache = ImageCache(gateway)
    scheduler = RefreshScheduler(cache, interval=3600)
    return cache, scheduler, ImageQueryService(cache, scheduler)


async def test_list_images_never_touches_the_store(services, gateway):
    _, _, query = services

    assert query.list_images() == ()
    assert gateway.calls == []


async def test_unknown_folder_returns_empty_and_schedules_fetch(services, gateway):
    cache, scheduler, query = services

    assert query.list_folder("a") == ()
    assert scheduler.pending() == 1
    await scheduler.wait_idle()

    assert gateway.calls == ["a"]
    assert [entry.key for entry in query.list_folder("a")] == ["a/1.jpg", "a/2.jpg"]
    assert gateway.calls == ["a"]


async def test_cached_empty_folder_is_served_without_refetch(services, gateway):
    _, scheduler, query = services

    query.list_folder("zzz")
    await scheduler.wait_idle()

    assert query.list_folder("zzz") == ()
    assert scheduler.pending() == 0
    assert gateway.calls == ["zzz"]
