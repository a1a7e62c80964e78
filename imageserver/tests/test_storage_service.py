"""
Unit tests for the object store gateway using a fake aiobotocore client.
"""

from dataclasses import replace

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from imageserver.services.storage_service import (
    ObjectStoreGateway,
    StorageError,
    StoreUnavailable,
    list_prefix,
)

pytestmark = pytest.mark.anyio


class FakePaginator:
    def __init__(self, client):
        self.client = client

    def paginate(self, **kwargs):
        self.client.paginate_calls.append(kwargs)
        return self._pages(kwargs["Prefix"])

    async def _pages(self, prefix):
        for index, page in enumerate(self.client.pages):
            if self.client.error is not None and index == self.client.fail_on_page:
                raise self.client.error
            contents = [obj for obj in page if obj["Key"].startswith(prefix)]
            yield {"Contents": contents} if contents else {}


class FakeS3Client:
    """Minimal async S3 client exposing a list_objects_v2 paginator."""

    def __init__(self, pages, error=None, fail_on_page=0):
        self.pages = pages
        self.error = error
        self.fail_on_page = fail_on_page
        self.paginate_calls = []

    def get_paginator(self, name):
        assert name == "list_objects_v2"
        return FakePaginator(self)


PAGES = [
    [{"Key": "a/1.jpg"}, {"Key": "a/2.jpg"}],
    [{"Key": "b/1.jpg"}],
    [{"Key": "c/1.jpg"}, {"Key": "a/3.jpg"}],
]


def test_list_prefix_appends_separator_only_for_folders():
    assert list_prefix("") == ""
    assert list_prefix("a") == "a/"
    assert list_prefix("a/b") == "a/b/"


async def test_list_all_drains_every_page_in_store_order(settings):
    client = FakeS3Client(PAGES)
    gateway = ObjectStoreGateway(settings, client=client)

    entries = await gateway.list_all()

    assert [entry.key for entry in entries] == ["a/1.jpg", "a/2.jpg", "b/1.jpg", "c/1.jpg", "a/3.jpg"]
    assert entries[0].url == "https://test-bucket.s3.eu-west-1.amazonaws.com/a/1.jpg"
    assert client.paginate_calls == [
        {"Bucket": "test-bucket", "Prefix": "", "PaginationConfig": {"PageSize": 1000}}
    ]


async def test_list_all_filters_on_folder_prefix(settings):
    client = FakeS3Client(PAGES)
    gateway = ObjectStoreGateway(settings, client=client)

    entries = await gateway.list_all("a")

    assert [entry.key for entry in entries] == ["a/1.jpg", "a/2.jpg", "a/3.jpg"]
    assert client.paginate_calls[0]["Prefix"] == "a/"


async def test_list_all_returns_empty_for_empty_bucket(settings):
    gateway = ObjectStoreGateway(settings, client=FakeS3Client([[]]))
    assert await gateway.list_all() == []


async def test_client_error_becomes_store_unavailable(settings):
    error = ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "ListObjectsV2")
    gateway = ObjectStoreGateway(settings, client=FakeS3Client(PAGES, error=error, fail_on_page=1))

    with pytest.raises(StoreUnavailable) as excinfo:
        await gateway.list_all()
    assert isinstance(excinfo.value, StorageError)
    assert excinfo.value.__cause__ is error


async def test_connection_error_becomes_store_unavailable(settings):
    error = EndpointConnectionError(endpoint_url="https://s3.eu-west-1.amazonaws.com")
    gateway = ObjectStoreGateway(settings, client=FakeS3Client(PAGES, error=error))

    with pytest.raises(StoreUnavailable):
        await gateway.list_all("a")


async def test_transport_error_becomes_store_unavailable(settings):
    error = ConnectionResetError("connection reset by peer")
    gateway = ObjectStoreGateway(settings, client=FakeS3Client(PAGES, error=error, fail_on_page=2))

    with pytest.raises(StoreUnavailable) as excinfo:
        await gateway.list_all()
    assert excinfo.value.__cause__ is error


async def test_broken_client_becomes_store_unavailable(settings):
    gateway = ObjectStoreGateway(settings, client=object())

    with pytest.raises(StoreUnavailable):
        await gateway.list_all()


async def test_public_url_overrides_aws_url(settings):
    custom = replace(settings, public_url="https://cdn.example.com")
    gateway = ObjectStoreGateway(custom, client=FakeS3Client(PAGES))

    entries = await gateway.list_all("b")

    assert [entry.url for entry in entries] == ["https://cdn.example.com/b/1.jpg"]


async def test_close_leaves_injected_client_in_place(settings):
    client = FakeS3Client(PAGES)
    gateway = ObjectStoreGateway(settings, client=client)

    await gateway.close()

    assert len(await gateway.list_all()) == 5
