"""HTTP adapter for the bunkr dashboard and upload endpoints."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..exceptions import APIError, AuthenticationError
from ..models import Album, UploadResponse

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://dash.bunkr.cr"
FINISH_CHUNKS_PATH = "finishchunks"


class BunkrAPIClient:
    """
    HTTP client for dashboard and upload calls.

    The token is sent as a `token` header on every request. Upload-endpoint
    calls never raise on HTTP or transport failures; they return an
    UploadResponse describing what happened. Dashboard calls raise APIError.
    """

    def __init__(
        self,
        token: str,
        api_url: str = DEFAULT_API_URL,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._token = token
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            headers={"token": self._token},
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("BunkrAPIClient not initialized. Use 'async with' context.")
        return self._client

    # Dashboard

    async def _dashboard_json(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        url = f"{self._api_url}{endpoint}"
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.RequestError as exc:
            raise APIError(f"{method} {endpoint} failed: {exc}") from exc

        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"token rejected on {method} {endpoint}", status_code=response.status_code
            )
        if response.status_code >= 400:
            raise APIError(
                f"API error {response.status_code} on {method} {endpoint}: {response.text}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise APIError(f"invalid JSON from {endpoint}: {exc}") from exc
        if not isinstance(data, dict):
            raise APIError(f"unexpected response from {endpoint}: {data!r}")
        return data

    async def verify_token(self) -> None:
        """Check the token against the dashboard. Raises AuthenticationError."""
        data = await self._dashboard_json("POST", "/api/tokens/verify", json={"token": self._token})
        if not data.get("success"):
            raise AuthenticationError(data.get("description") or "invalid token")

    async def get_upload_url(self) -> str:
        """Ask the dashboard which upload node to use."""
        data = await self._dashboard_json("GET", "/api/node")
        url = data.get("url")
        if not url:
            raise APIError(f"no upload url in node response: {data!r}")
        return str(url).strip('"')

    async def list_albums(self) -> List[Album]:
        data = await self._dashboard_json("GET", "/api/albums")
        return [
            Album(id=str(item["id"]), name=str(item.get("name", "")))
            for item in data.get("albums") or []
            if "id" in item
        ]

    async def create_album(self, name: str, description: str = "") -> str:
        """Create an album and return its id."""
        data = await self._dashboard_json(
            "POST", "/api/albums", json={"name": name, "description": description}
        )
        if not data.get("success") or "id" not in data:
            raise APIError(data.get("description") or f"album creation failed: {data!r}")
        logger.info("Created album %s (id %s)", name, data["id"])
        return str(data["id"])

    # Upload endpoints

    async def _post_upload(self, url: str, **kwargs) -> httpx.Response:
        return await self.client.post(url, **kwargs)

    async def upload_file(
        self,
        upload_url: str,
        filename: str,
        content: bytes,
        album_id: Optional[str] = None,
    ) -> UploadResponse:
        """Single-request upload. The album id travels as a header."""
        headers = {"albumid": album_id} if album_id else {}
        try:
            response = await self._post_upload(
                upload_url,
                headers=headers,
                files={"files[]": (filename, content)},
            )
        except httpx.RequestError as exc:
            return UploadResponse.transport_error(str(exc))
        return UploadResponse.parse(response.status_code, response.text)

    async def upload_chunk(
        self,
        upload_url: str,
        fields: Dict[str, str],
        chunk_name: str,
        content: bytes,
    ) -> UploadResponse:
        """Upload one chunk. Only the HTTP status decides success."""
        try:
            response = await self._post_upload(
                upload_url,
                data=fields,
                files={"files[]": (chunk_name, content)},
            )
        except httpx.RequestError as exc:
            return UploadResponse.transport_error(str(exc))

        if not response.is_success:
            return UploadResponse.http_error(response.status_code, response.text)
        return UploadResponse.success(status_code=response.status_code)

    async def finish_chunks(self, upload_url: str, payload: Dict[str, Any]) -> UploadResponse:
        """Ask the server to reassemble the chunks of one session."""
        url = f"{upload_url.rstrip('/')}/{FINISH_CHUNKS_PATH}"
        try:
            response = await self._post_upload(url, json=payload)
        except httpx.RequestError as exc:
            return UploadResponse.transport_error(str(exc))
        return UploadResponse.parse(response.status_code, response.text)
