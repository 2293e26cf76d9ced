"""
Core application engine for orchestrating episode downloads.

The `EpisodeDownloadManager` resolves each episode's sources and delegates
the actual transfer to the HLS pipeline or the single-file downloader.
"""
