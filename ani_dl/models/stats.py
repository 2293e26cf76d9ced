"""
Dataclass for tracking download session statistics.
"""

import time
from dataclasses import dataclass, field


@dataclass
class DownloadStats:
    """Tracks the outcome of each episode in a download session."""

    episodes_downloaded: int = 0
    episodes_failed: int = 0
    episodes_skipped: int = 0
    total_size_downloaded: int = 0
    failures: dict[str, str] = field(default_factory=dict)
    _start_time: float = field(default=0.0, repr=False)

    def __post_init__(self):
        self._start_time = time.monotonic()

    def record_success(self, size_bytes: int) -> None:
        self.episodes_downloaded += 1
        self.total_size_downloaded += size_bytes

    def record_failure(self, episode: str, reason: str) -> None:
        """Remembers why an episode failed so the summary can report it."""
        self.episodes_failed += 1
        self.failures[episode] = reason

    def record_skip(self) -> None:
        self.episodes_skipped += 1

    @property
    def elapsed_seconds(self) -> float:
        return time.monotonic() - self._start_time
