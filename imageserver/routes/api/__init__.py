"""
API routes package for the S3 Image Server.
This package contains API route modules that return JSON responses.
"""

from . import images

__all__ = ["images"]
