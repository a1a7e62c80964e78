"""
Routes package for the S3 Image Server.
This package contains all the route modules for the application.
"""

from . import health
from .api import images as api_images

__all__ = ["health", "api_images"]
