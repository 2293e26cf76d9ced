"""
ani-dl: an HLS stream downloader and source resolver for the AllAnime provider.
"""

__version__ = "0.3.0"
