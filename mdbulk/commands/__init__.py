"""Command implementations behind the CLI."""
from .editor import extract, update, verify
from .onedrive import download, list_remote, me, resolve

__all__ = [
    "extract",
    "update",
    "verify",
    "download",
    "list_remote",
    "me",
    "resolve",
]
