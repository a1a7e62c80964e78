"""
Image listing models for the S3 Image Server.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class ObjectEntry(BaseModel):
    """One stored object as exposed to API clients."""

    model_config = ConfigDict(frozen=True)

    key: str
    url: str


def build_object_url(
    bucket: str, region: str, key: str, public_url: Optional[str] = None
) -> str:
    """Return the public URL of ``key``; a pure function of its arguments."""
    if public_url:
        return f"{public_url.rstrip('/')}/{key}"
    return f"https://{bucket}.s3.{region}.amazonaws.com/{key}"


def build_entry(
    bucket: str, region: str, key: str, public_url: Optional[str] = None
) -> ObjectEntry:
    return ObjectEntry(key=key, url=build_object_url(bucket, region, key, public_url))
