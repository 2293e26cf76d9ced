"""
Utilities for handling file paths and episode file names.
"""

from pathlib import Path

from pathvalidate import sanitize_filename


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)


def episode_filename(episode: str, ext: str = "mp4") -> str:
    """
    Builds the file name for an episode, zero-padding numeric episodes to two
    digits (e.g. '5' -> 'Episode 05.mp4', '12.5' -> 'Episode 12.5.mp4').
    """
    label = episode.zfill(2) if episode.isdigit() else episode
    return sanitize_filename(f"Episode {label}.{ext}")


def show_dirname(title: str) -> str:
    """Returns a filesystem-safe directory name for a show title."""
    return sanitize_filename(title, replacement_text="_").strip() or "Unknown Show"
