"""Services for mdbulk."""
from .onedrive import OneDriveClient, create_onedrive_client, get_authenticated_client
from .state import JsonStateStore

__all__ = [
    "OneDriveClient",
    "create_onedrive_client",
    "get_authenticated_client",
    "JsonStateStore",
]
