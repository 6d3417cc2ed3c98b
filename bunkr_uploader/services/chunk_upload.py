"""
Chunk uploader - drives the chunked upload protocol for one file.

Flow:
1. Fresh session id (uuid4)
2. Upload chunk_0 .. chunk_{N-1} in order; a chunk that is missing,
   unreadable or rejected is logged and skipped, never aborting the loop
3. POST <upload_url>/finishchunks naming the session
4. The finish response alone decides whether the file succeeded
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..exceptions import LedgerError
from ..models import UploadCandidate, UploadConfig, UploadResponse, UploadResult
from ..protocols import ILedger, IUploadClient
from ..utils.events import (
    CHUNK_FAIL,
    FILE_PROGRESS,
    ChunkFailure,
    EventEmitter,
    FileProgress,
)
from .splitter import chunk_name, chunk_path

logger = logging.getLogger(__name__)


class ChunkUploadState(Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    FINISHING = "finishing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class UploadSession:
    """State of one chunked upload, discarded after the finish call."""
    session_id: str
    total_chunks: int
    chunk_size: int
    total_size: int
    acknowledged: int = 0
    chunk_index: int = 0
    failed_chunks: int = 0

    def acknowledge(self) -> int:
        self.acknowledged = min(self.acknowledged + self.chunk_size, self.total_size)
        return self.acknowledged

    def byte_offset(self, index: int) -> int:
        return index * self.chunk_size

    def form_fields(self, index: int) -> Dict[str, str]:
        return {
            "dzuuid": self.session_id,
            "dzchunkindex": str(index),
            "dztotalfilesize": str(self.total_size),
            "dzchunksize": str(self.chunk_size),
            "dztotalchunkcount": str(self.total_chunks),
            "dzchunkbyteoffset": str(self.byte_offset(index)),
        }


def new_session_id() -> str:
    return str(uuid.uuid4())


def build_finish_payload(
    session_id: str,
    candidate: UploadCandidate,
    album_id: Optional[str] = None,
) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "uuid": session_id,
        "original": candidate.name,
        "type": candidate.mime_type,
    }
    if album_id:
        entry["albumid"] = album_id
    entry["age"] = None
    entry["filelength"] = None
    return {"files": [entry]}


class ChunkUploader:
    """
    Uploads a pre-split file chunk by chunk, then asks for reassembly.

    Chunk files are deleted as soon as their request succeeds; chunks that
    failed stay in the scratch directory until the run removes it.
    """

    def __init__(
        self,
        client: IUploadClient,
        ledger: ILedger,
        config: Optional[UploadConfig] = None,
        emitter: Optional[EventEmitter] = None,
        session_factory: Callable[[], str] = new_session_id,
    ):
        self._client = client
        self._ledger = ledger
        self._config = config or UploadConfig()
        self._emitter = emitter or EventEmitter()
        self._session_factory = session_factory
        self.state = ChunkUploadState.IDLE

    async def _send_chunk(
        self,
        upload_url: str,
        session: UploadSession,
        index: int,
        content: bytes,
    ) -> UploadResponse:
        attempts = 1 + max(self._config.chunk_retries, 0)
        response = None
        for attempt in range(attempts):
            response = await self._client.upload_chunk(
                upload_url, session.form_fields(index), chunk_name(index), content
            )
            if response.ok:
                break
            if attempt < attempts - 1:
                logger.debug("Retrying chunk %d (attempt %d/%d)", index, attempt + 2, attempts)
        return response

    async def _skip_chunk(self, candidate: UploadCandidate, session: UploadSession, index: int, reason: str):
        session.failed_chunks += 1
        logger.warning("✗ %s chunk %d skipped: %s", candidate.name, index, reason)
        await self._emitter.emit(CHUNK_FAIL, ChunkFailure(candidate.name, index, reason))

    async def upload_chunks(
        self,
        candidate: UploadCandidate,
        upload_url: str,
        scratch_dir: Path,
        session: UploadSession,
    ) -> None:
        """Attempt every chunk once (plus configured retries), in index order."""
        self.state = ChunkUploadState.UPLOADING
        progress = FileProgress(candidate.name, candidate.path, 0, candidate.size)

        for index in range(session.total_chunks):
            session.chunk_index = index
            path = chunk_path(scratch_dir, index)
            if not path.exists():
                await self._skip_chunk(candidate, session, index, f"{path.name} does not exist")
                continue

            try:
                content = await asyncio.to_thread(path.read_bytes)
            except OSError as e:
                await self._skip_chunk(candidate, session, index, f"failed to read {path.name}: {e}")
                continue

            response = await self._send_chunk(upload_url, session, index, content)
            if not response.ok:
                await self._skip_chunk(candidate, session, index, response.describe())
                continue

            progress.bytes_uploaded = session.acknowledge()
            await self._emitter.emit(FILE_PROGRESS, candidate.path, progress)
            try:
                path.unlink()
            except OSError as e:
                logger.warning("Failed to delete %s: %s", path, e)

    async def upload(
        self,
        candidate: UploadCandidate,
        upload_url: str,
        scratch_dir: Path,
        total_chunks: int,
        album_id: Optional[str] = None,
    ) -> UploadResult:
        """
        Run the chunked protocol for one file.

        Args:
            candidate: File being uploaded
            upload_url: Upload node URL
            scratch_dir: Directory holding chunk_0 .. chunk_{total_chunks-1}
            total_chunks: Count returned by the splitter
            album_id: Optional album, sent in the finish payload

        Returns:
            UploadResult with the final URL on success
        """
        session = UploadSession(
            session_id=self._session_factory(),
            total_chunks=total_chunks,
            chunk_size=self._config.chunk_size,
            total_size=candidate.size,
        )
        logger.debug(
            "Session %s: %s in %d chunks", session.session_id, candidate.name, total_chunks
        )

        await self.upload_chunks(candidate, upload_url, scratch_dir, session)

        self.state = ChunkUploadState.FINISHING
        payload = build_finish_payload(session.session_id, candidate, album_id)
        response = await self._client.finish_chunks(upload_url, payload)

        if not response.has_url:
            self.state = ChunkUploadState.FAILED
            logger.error("Failed to upload %s: %s", candidate.name, response.describe())
            return UploadResult.fail(
                candidate.path,
                candidate.name,
                response.describe(),
                rate_limited=response.rate_limited,
            )

        url = response.url
        try:
            await self._ledger.append(candidate.path, candidate.name)
        except LedgerError as e:
            logger.error("%s", e)

        self.state = ChunkUploadState.DONE
        if session.failed_chunks:
            logger.warning(
                "%s finished with %d of %d chunks skipped",
                candidate.name, session.failed_chunks, total_chunks,
            )
        logger.info("Uploaded %s -> %s", candidate.name, url)
        return UploadResult.ok(candidate.path, candidate.name, url)
