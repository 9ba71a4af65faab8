from pathlib import Path
from typing import Deque, Optional, Union
import asyncio
import json
import logging
import os

from mdbulk.models import DEFAULT_MAX_CONCURRENT, DriveItem
from mdbulk.orchestrator.models import DownloadSummary, DownloadTask
from mdbulk.orchestrator.queue import process_queue
from mdbulk.protocols import IDriveClient
from mdbulk.utils.events import EventEmitter
logger = logging.getLogger(__name__)


def _display_path(path: Path) -> str:
    try:
        return os.path.relpath(path)
    except ValueError:
        # different drive on Windows
        return str(path)


def sidecar_metadata(task: DownloadTask) -> dict:
    """Origin record written next to every downloaded file."""
    return {
        "url": task.item.web_url,
        "driveId": task.item.drive_id,
        "it": task.item.id,
        "relPath": task.rel_path,
    }


class RecursiveDownloader:
    """
    Materializes a remote folder tree on disk through the bounded queue.

    Files are downloaded with a ``.json`` sidecar, folders are listed and
    their children enqueued. Events:

    - ``file_saved(task, size)``
    - ``folder_listed(task, child_count)``
    - ``item_skipped(task)``
    """

    def __init__(
        self,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        events: Optional[EventEmitter] = None,
    ):
        self._max_concurrent = max_concurrent
        self.events = events or EventEmitter()
        self._summary = DownloadSummary()

    @property
    def summary(self) -> DownloadSummary:
        return self._summary

    async def run(self, root: DownloadTask) -> DownloadSummary:
        self._summary = DownloadSummary()
        stats = await process_queue([root], self.handle, self._max_concurrent)
        logger.info(
            f"Download complete: {self._summary.files} files, {self._summary.folders} folders "
            f"({stats.dispatched} tasks, peak {stats.peak_in_flight} in flight)"
        )
        return self._summary

    async def handle(self, task: DownloadTask, queue: Deque[DownloadTask]) -> None:
        item = task.item
        if item.is_file:
            await self._save_file(task)
        elif item.is_folder:
            await self._list_folder(task, queue)
        else:
            logger.debug(f"Skipping {task.rel_path}: neither file nor folder")
            self._summary.skipped += 1
            await self.events.emit("item_skipped", task)

    async def _save_file(self, task: DownloadTask) -> None:
        dst = task.destination
        logger.debug(f"saving {task.item.web_url} to {_display_path(dst)}")

        data = await task.client.download_drive_item(task.item)
        await asyncio.to_thread(task.dest_dir.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(dst.write_bytes, data)

        size = len(data)
        logger.info(f"{size / 1024:>8.2f} KB - {_display_path(dst)}")

        sidecar = dst.with_name(f"{dst.name}.json")
        payload = json.dumps(sidecar_metadata(task))
        await asyncio.to_thread(sidecar.write_text, payload, encoding="utf-8")

        self._summary.files += 1
        self._summary.bytes_written += size
        await self.events.emit("file_saved", task, size)

    async def _list_folder(self, task: DownloadTask, queue: Deque[DownloadTask]) -> None:
        children = await task.client.list_children(task.item)
        child_dir = task.destination
        child_rel = task.rel_path
        for child in children:
            queue.append(DownloadTask(
                client=task.client,
                dest_dir=child_dir,
                rel_dir=child_rel,
                item=child,
            ))
        logger.debug(f"Listed {task.rel_path}: {len(children)} children")
        self._summary.folders += 1
        await self.events.emit("folder_listed", task, len(children))


async def download_recursively(
    client: IDriveClient,
    dest_dir: Union[str, Path],
    rel_dir: str,
    root_item: DriveItem,
    max_concurrent: int = DEFAULT_MAX_CONCURRENT,
    events: Optional[EventEmitter] = None,
) -> DownloadSummary:
    """
    Download ``root_item`` (file or folder tree) into ``dest_dir``.

    Args:
        client: Authenticated drive client, shared by all tasks
        dest_dir: Local parent directory of the root item
        rel_dir: Remote path of that parent, recorded in sidecars
        root_item: Complete drive item to start from
        max_concurrent: Maximum simultaneous downloads/listings
        events: Optional emitter for progress events

    Returns:
        DownloadSummary
    """
    downloader = RecursiveDownloader(max_concurrent=max_concurrent, events=events)
    root = DownloadTask(client=client, dest_dir=Path(dest_dir), rel_dir=rel_dir, item=root_item)
    return await downloader.run(root)
