"""
Models for mdbulk.

Immutable dataclasses shared by the OneDrive commands and the orchestrator.
"""
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .errors import PreconditionError


DEFAULT_STATE_FILE = ".hlx-blk.json"
DEFAULT_TOKENS_FILE = "tokens.json"
DEFAULT_MAX_CONCURRENT = 8
DEFAULT_GRAPH_URL = "https://graph.microsoft.com/v1.0"
DEFAULT_TOKEN_URL = "https://login.microsoftonline.com/common/oauth2/v2.0/token"


@dataclass(frozen=True)
class DriveItem:
    """Immutable reference to a OneDrive file or folder."""
    id: str
    name: str = ""
    drive_id: Optional[str] = None
    web_url: Optional[str] = None
    is_file: bool = False
    is_folder: bool = False
    size: Optional[int] = None

    @classmethod
    def from_graph(cls, data: Mapping[str, Any]) -> "DriveItem":
        """Build from a Graph ``driveItem`` resource."""
        parent = data.get("parentReference") or {}
        remote = data.get("remoteItem") or {}
        drive_id = parent.get("driveId") or (remote.get("parentReference") or {}).get("driveId")
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            drive_id=drive_id,
            web_url=data.get("webUrl"),
            is_file="file" in data,
            is_folder="folder" in data,
            size=data.get("size"),
        )

    @classmethod
    def from_canonical_path(cls, path: str) -> "DriveItem":
        """
        Parse a canonical ``/drives/{driveId}/items/{id}`` path.

        Raises:
            PreconditionError: if the path does not have that shape
        """
        parts = path.strip("/").split("/")
        if len(parts) != 4 or parts[0] != "drives" or parts[2] != "items" or not all(parts):
            raise PreconditionError(f"invalid root path: {path}")
        return cls(id=parts[3], drive_id=parts[1])

    @property
    def canonical_path(self) -> str:
        return f"/drives/{self.drive_id}/items/{self.id}"


@dataclass(frozen=True)
class SessionState:
    """Remote root and working directory persisted between commands."""
    root: Optional[str] = None
    cwd: str = "/"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SessionState":
        return cls(root=data.get("root"), cwd=data.get("cwd") or "/")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"cwd": self.cwd}
        if self.root is not None:
            data["root"] = self.root
        return data


@dataclass(frozen=True)
class BulkConfig:
    """Immutable configuration for mdbulk commands."""
    state_file: str = DEFAULT_STATE_FILE
    tokens_file: str = DEFAULT_TOKENS_FILE
    max_concurrent: int = DEFAULT_MAX_CONCURRENT
    graph_url: str = DEFAULT_GRAPH_URL
    token_url: str = DEFAULT_TOKEN_URL
    timeout: int = 60

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, **overrides) -> "BulkConfig":
        """Read defaults from ``MDBULK_*`` variables; explicit overrides win."""
        env = os.environ if env is None else env
        values: Dict[str, Any] = {}
        if env.get("MDBULK_MAX_CONCURRENT"):
            values["max_concurrent"] = int(env["MDBULK_MAX_CONCURRENT"])
        if env.get("MDBULK_STATE_FILE"):
            values["state_file"] = env["MDBULK_STATE_FILE"]
        if env.get("MDBULK_TOKENS_FILE"):
            values["tokens_file"] = env["MDBULK_TOKENS_FILE"]
        if env.get("MDBULK_GRAPH_URL"):
            values["graph_url"] = env["MDBULK_GRAPH_URL"]
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)
