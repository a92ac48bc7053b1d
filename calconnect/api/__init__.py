"""
HTTP layer - FastAPI app exposing the availability service.
"""

from .app import create_app

__all__ = ["create_app"]
