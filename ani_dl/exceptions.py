"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class AniDlError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(AniDlError):
    """Raised for issues related to configuration loading or validation."""


class ApiError(AniDlError):
    """Raised when the upstream GraphQL API returns an unusable response."""


class InvalidPlaylistError(AniDlError):
    """Raised when playlist text is not a recognizable HLS playlist."""


class NoVariantsError(AniDlError):
    """Raised when a master playlist offers no variant to select."""


class SegmentFetchError(AniDlError):
    """
    Raised when a single media segment cannot be fetched. Aborts the whole download.
    """

    def __init__(self, index: int, url: str, reason: str = ""):
        self.index = index
        self.url = url
        self.reason = reason
        message = f"Segment {index} failed to download from {url}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class AssemblyError(AniDlError):
    """Raised when the segment buffer is incomplete at assembly time."""


class DecodeError(AniDlError):
    """Raised when an encoded provider identifier decodes to nothing usable."""


class NoSourceFoundError(AniDlError):
    """Raised when every source tier has been exhausted without a usable result."""
