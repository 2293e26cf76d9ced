"""
Data Models Layer.

This package contains the Pydantic configuration model and the session
statistics used throughout the application.
"""

from .config import AppConfig
from .stats import DownloadStats

__all__ = ["AppConfig", "DownloadStats"]
