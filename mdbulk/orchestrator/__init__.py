"""Orchestrator package - bounded queue and recursive downloads."""
from .download import RecursiveDownloader, download_recursively
from .models import DownloadOutcome, DownloadSummary, DownloadTask
from .queue import QueueStats, process_queue

__all__ = [
    "RecursiveDownloader",
    "download_recursively",
    "DownloadOutcome",
    "DownloadSummary",
    "DownloadTask",
    "QueueStats",
    "process_queue",
]
