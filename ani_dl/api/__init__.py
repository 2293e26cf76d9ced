"""
AllAnime API Layer.

This package handles all communication with the provider's GraphQL API.
"""

from .client import AllAnimeClient

__all__ = ["AllAnimeClient"]
