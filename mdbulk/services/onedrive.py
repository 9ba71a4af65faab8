"""HTTP adapter for OneDrive (Microsoft Graph) operations."""
from __future__ import annotations

import base64
import json
import logging
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union
from urllib.parse import quote

import httpx

from ..errors import AuthenticationError, OneDriveError
from ..models import DEFAULT_GRAPH_URL, DEFAULT_TOKEN_URL, BulkConfig, DriveItem

logger = logging.getLogger(__name__)

# refresh slightly before the token really expires
EXPIRY_MARGIN_SECONDS = 60
DEFAULT_SCOPE = "offline_access Files.Read.All User.Read"


def encode_share_link(link: str) -> str:
    """Encode a sharing URL as a Graph share id (``u!`` + unpadded base64url)."""
    encoded = base64.urlsafe_b64encode(link.encode("utf-8")).decode("ascii")
    return "u!" + encoded.rstrip("=")


def _parse_expires_on(value: Any) -> Optional[float]:
    """Accept epoch seconds, epoch milliseconds or an ISO timestamp."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return value / 1000.0 if value > 1e11 else float(value)
    try:
        return _parse_expires_on(float(value))
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).timestamp()
    except ValueError:
        logger.warning(f"Ignoring unparseable token expiry: {value!r}")
        return None


class OneDriveClient:
    """
    Async Microsoft Graph client for drive items.

    Implements IDriveClient protocol.

    Usage:
        async with OneDriveClient(access_token=token) as od:
            children = await od.list_children(item)
    """

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        refresh_token: Optional[str] = None,
        access_token: Optional[str] = None,
        expires_on: Any = None,
        base_url: str = DEFAULT_GRAPH_URL,
        token_url: str = DEFAULT_TOKEN_URL,
        timeout: int = 60,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client_id = client_id
        self._client_secret = client_secret
        self._refresh_token = refresh_token
        self._access_token = access_token
        self._expires_on = _parse_expires_on(expires_on)
        self._base_url = base_url
        self._token_url = token_url
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def authenticated(self) -> bool:
        if self._access_token and not self._token_expired():
            return True
        return bool(self._refresh_token and self._client_id)

    def _token_expired(self) -> bool:
        if self._expires_on is None:
            return False
        return time.time() >= self._expires_on - EXPIRY_MARGIN_SECONDS

    async def _ensure_token(self) -> str:
        if self._access_token and not self._token_expired():
            return self._access_token
        if not (self._refresh_token and self._client_id):
            raise AuthenticationError("OneDrive client is not authenticated. Login first.")

        logger.debug("Refreshing OneDrive access token")
        data = {
            "grant_type": "refresh_token",
            "client_id": self._client_id,
            "refresh_token": self._refresh_token,
            "scope": DEFAULT_SCOPE,
        }
        if self._client_secret:
            data["client_secret"] = self._client_secret

        response = await self._http().post(self._token_url, data=data)
        if response.status_code >= 400:
            raise AuthenticationError(
                f"token refresh failed ({response.status_code}): {self._error_detail(response)}"
            )
        payload = response.json()
        self._access_token = payload["access_token"]
        expires_in = payload.get("expires_in")
        self._expires_on = time.time() + float(expires_in) if expires_in else None
        self._refresh_token = payload.get("refresh_token", self._refresh_token)
        return self._access_token

    def _http(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("OneDriveClient not initialized. Use 'async with' context.")
        return self._client

    @staticmethod
    def _error_detail(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        client = self._http()
        token = await self._ensure_token()
        headers = {"Authorization": f"Bearer {token}"}
        headers.update(kwargs.pop("headers", {}))

        logger.debug(f"{method} {url}")
        response = await client.request(method, url, headers=headers, **kwargs)
        if response.status_code >= 400:
            raise OneDriveError(response.status_code, method, url, self._error_detail(response))
        return response

    @staticmethod
    def _item_url(item: DriveItem, rel_path: str = "") -> str:
        if item.drive_id:
            url = f"/drives/{item.drive_id}/items/{item.id}"
        else:
            url = f"/me/drive/items/{item.id}"
        rel_path = rel_path.strip("/")
        if rel_path:
            url += f":/{quote(rel_path, safe='/')}:"
        return url

    async def me(self) -> Dict[str, Any]:
        response = await self._request("GET", "/me")
        return response.json()

    async def get_drive_item_from_share_link(self, link: str) -> DriveItem:
        response = await self._request("GET", f"/shares/{encode_share_link(link)}/driveItem")
        return DriveItem.from_graph(response.json())

    async def list_children(self, item: DriveItem, rel_path: str = "") -> List[DriveItem]:
        """List all children, following ``@odata.nextLink`` pages."""
        url: Optional[str] = f"{self._item_url(item, rel_path)}/children"
        children: List[DriveItem] = []
        while url:
            data = (await self._request("GET", url)).json()
            children.extend(DriveItem.from_graph(value) for value in data.get("value", []))
            url = data.get("@odata.nextLink")
        return children

    async def download_drive_item(self, item: DriveItem) -> bytes:
        response = await self._request("GET", f"{self._item_url(item)}/content", follow_redirects=True)
        return response.content

    async def get_drive_item(
        self,
        item: DriveItem,
        rel_path: str = "",
        download: bool = False,
    ) -> Union[DriveItem, bytes]:
        """
        Fetch the item at ``rel_path`` below ``item``.

        Args:
            item: Parent (usually the session root)
            rel_path: Path relative to ``item``
            download: Return the file content instead of the metadata

        Returns:
            DriveItem, or bytes when ``download`` is set
        """
        url = self._item_url(item, rel_path)
        if download:
            response = await self._request("GET", f"{url}/content", follow_redirects=True)
            return response.content
        response = await self._request("GET", url)
        return DriveItem.from_graph(response.json())


def _read_tokens(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            tokens = json.load(f)
    except FileNotFoundError:
        return {}
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable tokens file {path}: {e}")
        return {}
    return tokens if isinstance(tokens, dict) else {}


def create_onedrive_client(
    config: Optional[BulkConfig] = None,
    env: Optional[Mapping[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> OneDriveClient:
    """Build a client from ``AZURE_WORD2MD_*`` variables and the tokens file."""
    config = config or BulkConfig()
    env = os.environ if env is None else env
    tokens = _read_tokens(Path(config.tokens_file))

    return OneDriveClient(
        client_id=env.get("AZURE_WORD2MD_CLIENT_ID"),
        client_secret=env.get("AZURE_WORD2MD_CLIENT_SECRET"),
        refresh_token=env.get("AZURE_WORD2MD_REFRESH_TOKEN"),
        access_token=tokens.get("accessToken"),
        expires_on=tokens.get("expiresOn"),
        base_url=config.graph_url,
        token_url=config.token_url,
        timeout=config.timeout,
        transport=transport,
    )


def get_authenticated_client(
    config: Optional[BulkConfig] = None,
    env: Optional[Mapping[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> OneDriveClient:
    client = create_onedrive_client(config, env, transport)
    if not client.authenticated:
        raise AuthenticationError("OneDrive client is not authenticated. Login first.")
    return client
