"""
Protocols (Interfaces) for Dependency Inversion.

Small interfaces the uploaders depend on, so tests can substitute fakes.
"""
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union, runtime_checkable

from .models import UploadResponse


@runtime_checkable
class IUploadClient(Protocol):
    """Interface for the upload endpoints."""

    async def upload_file(
        self,
        upload_url: str,
        filename: str,
        content: bytes,
        album_id: Optional[str] = None,
    ) -> UploadResponse:
        """Upload a whole file in one request."""
        ...

    async def upload_chunk(
        self,
        upload_url: str,
        fields: Dict[str, str],
        chunk_name: str,
        content: bytes,
    ) -> UploadResponse:
        """Upload one chunk of a session."""
        ...

    async def finish_chunks(self, upload_url: str, payload: Dict[str, Any]) -> UploadResponse:
        """Reassemble the chunks of a session."""
        ...


@runtime_checkable
class ILedger(Protocol):
    """Interface for the upload ledger."""

    async def has_record(self, file_path: Union[str, Path]) -> bool:
        ...

    async def append(self, file_path: Union[str, Path], display_name: str) -> None:
        ...
