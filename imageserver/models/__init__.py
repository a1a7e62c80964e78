"""
Models package for the S3 Image Server.
Contains data models exposed by the API.
"""

from .image import ObjectEntry, build_entry, build_object_url

__all__ = ["ObjectEntry", "build_entry", "build_object_url"]
