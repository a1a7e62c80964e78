"""
S3 Image Server: cached, read-only listings of an S3 bucket over HTTP.
"""

__version__ = "1.0.0"
