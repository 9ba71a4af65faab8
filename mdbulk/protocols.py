"""
Protocols (Interfaces) for Dependency Inversion.

Commands and the orchestrator depend on these, never on httpx or the
filesystem layout directly.
"""
from typing import Any, Dict, List, Protocol, Union, runtime_checkable

from .models import DriveItem, SessionState


@runtime_checkable
class IDriveClient(Protocol):
    """Interface for remote document store access."""

    @property
    def authenticated(self) -> bool:
        ...

    async def me(self) -> Dict[str, Any]:
        """Return the signed-in user profile."""
        ...

    async def get_drive_item_from_share_link(self, link: str) -> DriveItem:
        """Resolve a sharing URL to its drive item."""
        ...

    async def list_children(self, item: DriveItem, rel_path: str = "") -> List[DriveItem]:
        """List the children of a folder (optionally below a relative path)."""
        ...

    async def download_drive_item(self, item: DriveItem) -> bytes:
        """Download the content of a file item."""
        ...

    async def get_drive_item(
        self,
        item: DriveItem,
        rel_path: str = "",
        download: bool = False,
    ) -> Union[DriveItem, bytes]:
        """Fetch the item at ``rel_path`` below ``item``, or its content."""
        ...


@runtime_checkable
class IStateStore(Protocol):
    """Interface for session state persistence."""

    def load(self) -> SessionState:
        ...

    def save(self, state: SessionState) -> None:
        ...
