"""
API Routers for the Photo Capture Server
"""

from . import capture, pages

__all__ = ["capture", "pages"]
