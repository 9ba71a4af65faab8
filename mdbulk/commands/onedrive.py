"""
OneDrive commands: me, resolve, ls and get.

Commands take their collaborators (client, state, store) as arguments and
return data; rendering is left to the CLI.
"""
import asyncio
import logging
import posixpath
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from ..errors import PreconditionError
from ..models import DEFAULT_MAX_CONCURRENT, DriveItem, SessionState
from ..orchestrator.download import download_recursively
from ..orchestrator.models import DownloadOutcome
from ..protocols import IDriveClient, IStateStore
from ..utils.events import EventEmitter

logger = logging.getLogger(__name__)

PROG = "mdbulk"


def _require_root(state: SessionState, command: str) -> DriveItem:
    if not state.root:
        raise PreconditionError(f"{command} needs path. use '{PROG} resolve' to set root.")
    return DriveItem.from_canonical_path(state.root)


async def me(client: IDriveClient) -> Dict[str, Any]:
    """Profile of the signed-in user (``displayName``, ``mail``, ...)."""
    return await client.me()


async def resolve(client: IDriveClient, store: IStateStore, link: str) -> Tuple[DriveItem, SessionState]:
    """
    Resolve a share link and make it the session root.

    Args:
        client: Authenticated drive client
        store: Where the new session state is saved
        link: OneDrive/SharePoint sharing URL

    Returns:
        (resolved item, saved state)
    """
    item = await client.get_drive_item_from_share_link(link)
    state = SessionState(root=item.canonical_path, cwd="/")
    store.save(state)
    logger.info(f"root path updated: {state.root}")
    return item, state


async def list_remote(client: IDriveClient, state: SessionState, path: Optional[str] = None) -> List[str]:
    """List ``cwd/path`` below the session root; folders end with ``/``."""
    root = _require_root(state, "ls")
    if path and path.startswith("https://"):
        raise PreconditionError(f"ls does not work on share links directly. use '{PROG} resolve' to set root.")

    remote_path = posixpath.join(state.cwd, path or "")
    children = await client.list_children(root, remote_path)
    entries = []
    for child in children:
        entry = posixpath.join(remote_path, child.name)
        if child.is_folder:
            entry += "/"
        entries.append(entry)
    return entries


def resolve_destination(remote_path: str, local: Optional[Union[str, Path]], recursive: bool) -> Path:
    """
    Local destination for ``get``.

    Raises:
        PreconditionError: for a recursive download into a non-directory, or
            when the destination already exists
    """
    name = posixpath.basename(remote_path.rstrip("/"))
    dst = Path(name).resolve()
    if local:
        local_path = Path(local)
        if local_path.is_dir():
            dst = (local_path / name).resolve()
        elif recursive:
            raise PreconditionError("Recursive target needs to be a directory.")
        else:
            dst = local_path.resolve()

    if dst.exists():
        raise PreconditionError(f"Refusing to overwrite {dst}")
    return dst


async def download(
    client: IDriveClient,
    state: SessionState,
    path: str,
    local: Optional[Union[str, Path]] = None,
    recursive: bool = False,
    max_concurrent: int = DEFAULT_MAX_CONCURRENT,
    events: Optional[EventEmitter] = None,
) -> DownloadOutcome:
    """
    Download ``cwd/path`` (a file, or a folder tree with ``recursive``).

    All preconditions are checked before anything is fetched or written.
    """
    root = _require_root(state, "get")
    remote_path = posixpath.join(state.cwd, path)
    dst = resolve_destination(remote_path, local, recursive)

    if recursive:
        item = await client.get_drive_item(root, remote_path, download=False)
        rel_dir = posixpath.dirname(path.strip("/"))
        summary = await download_recursively(
            client,
            dst.parent,
            rel_dir,
            item,
            max_concurrent=max_concurrent,
            events=events,
        )
        return DownloadOutcome(destination=dst, recursive=True, bytes_written=summary.bytes_written, summary=summary)

    logger.info(f"saving to {dst}")
    data = await client.get_drive_item(root, remote_path, download=True)
    await asyncio.to_thread(dst.write_bytes, data)
    return DownloadOutcome(destination=dst, recursive=False, bytes_written=len(data))
