"""
mdbulk - bulk tooling for Word to Markdown workflows.

Two independent tool sets:
- Markdown metadata: extract/update labelled fields ("Topics: a, b") in bulk
- OneDrive: browse a shared folder and download files or whole trees with
  bounded concurrency

Usage:
    from mdbulk import extract_path, update_records, DEFAULT_FIELDS

    rows = extract_path("docs/")
    update_records([{"path": "docs/a.md", "topics": "x, y"}])

    from mdbulk import OneDriveClient, download_recursively

    async with OneDriveClient(access_token=token) as od:
        item = await od.get_drive_item_from_share_link(link)
        await download_recursively(od, Path("out"), "", item)
"""
__version__ = "0.3.0"

from .editor import (
    DEFAULT_FIELDS,
    FieldDescriptor,
    MarkdownDocument,
    extract_path,
    update_records,
    verify_records,
)
from .errors import (
    AuthenticationError,
    MalformedInputError,
    MdBulkError,
    OneDriveError,
    PreconditionError,
)
from .models import BulkConfig, DriveItem, SessionState
from .orchestrator import DownloadSummary, DownloadTask, download_recursively, process_queue
from .services import JsonStateStore, OneDriveClient

__all__ = [
    # Editor
    "DEFAULT_FIELDS",
    "FieldDescriptor",
    "MarkdownDocument",
    "extract_path",
    "update_records",
    "verify_records",
    # Errors
    "AuthenticationError",
    "MalformedInputError",
    "MdBulkError",
    "OneDriveError",
    "PreconditionError",
    # Models
    "BulkConfig",
    "DriveItem",
    "SessionState",
    # Orchestrator
    "DownloadSummary",
    "DownloadTask",
    "download_recursively",
    "process_queue",
    # Services
    "JsonStateStore",
    "OneDriveClient",
]
