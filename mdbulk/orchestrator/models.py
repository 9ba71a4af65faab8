"""Orchestrator data models."""
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..models import DriveItem
from ..protocols import IDriveClient


@dataclass(frozen=True)
class DownloadTask:
    """Self-contained unit of work for the recursive download queue."""
    client: IDriveClient
    dest_dir: Path
    rel_dir: str
    item: DriveItem

    @property
    def destination(self) -> Path:
        return self.dest_dir / self.item.name

    @property
    def rel_path(self) -> str:
        if not self.rel_dir:
            return self.item.name
        return posixpath.join(self.rel_dir, self.item.name)


@dataclass
class DownloadSummary:
    """Result of a recursive download."""
    files: int = 0
    folders: int = 0
    skipped: int = 0
    bytes_written: int = 0


@dataclass(frozen=True)
class DownloadOutcome:
    """Result of the ``get`` command."""
    destination: Path
    recursive: bool
    bytes_written: int = 0
    summary: Optional[DownloadSummary] = None
