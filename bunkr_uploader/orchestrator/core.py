"""Core orchestrator - processes upload candidates one at a time."""
import logging
from pathlib import Path
from typing import Callable, Optional, Sequence

from ..exceptions import SplitError
from ..models import UploadCandidate, UploadConfig, UploadResult
from ..protocols import IUploadClient
from ..services.api_client import DEFAULT_API_URL, BunkrAPIClient
from ..services.chunk_upload import ChunkUploader
from ..services.inspector import inspect_file
from ..services.ledger import DEFAULT_LEDGER_FILE, Ledger
from ..services.scratch import RunContext
from ..services.simple_upload import SimpleUploader
from ..services.splitter import ChunkSplitter
from ..utils.events import (
    FILE_COMPLETE,
    FILE_FAIL,
    FILE_SKIP,
    FILE_START,
    FINISH,
    RATE_LIMITED,
    EventEmitter,
)
from .models import RunResult

logger = logging.getLogger(__name__)


class UploadOrchestrator:
    """
    Orchestrates a run over an ordered list of files.

    Follows:
    - Dependency Injection (client and ledger may be injected)
    - Single Responsibility (delegates to the uploaders)

    Usage:
        async with UploadOrchestrator(token, resources_dir) as uploader:
            uploader.on(FILE_COMPLETE, print)
            result = await uploader.run(paths)
    """

    def __init__(
        self,
        token: str,
        resources_dir: Path,
        config: Optional[UploadConfig] = None,
        album_id: Optional[str] = None,
        upload_url: Optional[str] = None,
        api_url: str = DEFAULT_API_URL,
        client: Optional[IUploadClient] = None,
        ledger: Optional[Ledger] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            token: Dashboard token sent with every request
            resources_dir: Directory holding the ledger and scratch directories
            config: Upload configuration
            album_id: Album attached to every upload (None for no album)
            upload_url: Upload node URL; asked from the dashboard when None
            api_url: Dashboard base URL
            client: Pre-built upload client (a BunkrAPIClient is created otherwise)
            ledger: Pre-built ledger (defaults to <resources_dir>/logs.txt)
        """
        self._config = config or UploadConfig()
        self._resources_dir = Path(resources_dir)
        self._album_id = album_id or None
        self._upload_url = upload_url
        self._api_url = api_url
        self._token = token
        self._external_client = client
        self._events = EventEmitter()
        self._ledger = ledger or Ledger(
            self._resources_dir / DEFAULT_LEDGER_FILE,
            match=self._config.ledger_match,
            emitter=self._events,
        )

        # Initialized in __aenter__
        self._client = None
        self._owned_client: Optional[BunkrAPIClient] = None
        self._run: Optional[RunContext] = None
        self._splitter = ChunkSplitter()
        self._simple: Optional[SimpleUploader] = None
        self._chunked: Optional[ChunkUploader] = None

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def upload_url(self) -> Optional[str]:
        return self._upload_url

    def on(self, event_name: str, callback: Callable) -> None:
        self._events.on(event_name, callback)

    async def __aenter__(self):
        """Open the client, resolve the upload node and create the scratch directory."""
        if self._external_client is not None:
            self._client = self._external_client
        else:
            self._owned_client = BunkrAPIClient(
                self._token, api_url=self._api_url, timeout=self._config.timeout
            )
            await self._owned_client.__aenter__()
            self._client = self._owned_client

        try:
            if not self._upload_url:
                self._upload_url = await self._client.get_upload_url()
                logger.info("Upload node: %s", self._upload_url)

            self._run = RunContext(self._resources_dir)
            await self._run.__aenter__()
        except BaseException:
            await self._close_client()
            raise

        self._simple = SimpleUploader(self._client, self._ledger)
        self._chunked = ChunkUploader(
            self._client, self._ledger, self._config, emitter=self._events
        )
        return self

    async def __aexit__(self, *args):
        """Remove the scratch directory and close the client."""
        try:
            if self._run is not None:
                await self._run.__aexit__(*args)
                self._run = None
        finally:
            await self._close_client()

    async def _close_client(self) -> None:
        if self._owned_client is not None:
            await self._owned_client.__aexit__(None, None, None)
            self._owned_client = None

    async def _upload_candidate(self, candidate: UploadCandidate) -> UploadResult:
        if not self._config.needs_chunking(candidate.size):
            return await self._simple.upload(candidate, self._upload_url, self._album_id)

        try:
            total_chunks = await self._splitter.split(
                candidate.path, self._run.scratch_dir, self._config.chunk_size
            )
        except SplitError as e:
            logger.error("%s", e)
            return UploadResult.fail(candidate.path, candidate.name, str(e))

        return await self._chunked.upload(
            candidate,
            self._upload_url,
            self._run.scratch_dir,
            total_chunks,
            self._album_id,
        )

    async def process_file(self, path: Path) -> UploadResult:
        """Skip, reject or upload one file."""
        if self._simple is None or self._chunked is None:
            raise RuntimeError("UploadOrchestrator not initialized. Use 'async with' context.")

        try:
            candidate = inspect_file(path, self._config.mime_type)
        except OSError as e:
            logger.error("Cannot inspect %s: %s", path, e)
            result = UploadResult.fail(Path(path), Path(path).name, f"cannot inspect file: {e}")
            await self._events.emit(FILE_FAIL, result)
            return result

        if not self._config.force and await self._ledger.has_record(candidate.path):
            logger.info("%s skipped, already uploaded", candidate.name)
            result = UploadResult.skip(candidate.path, candidate.name)
            await self._events.emit(FILE_SKIP, result)
            return result

        if self._config.is_oversized(candidate.size):
            logger.error("Failed to upload '%s', is more than 2GB", candidate.name)
            result = UploadResult.fail(
                candidate.path,
                candidate.name,
                f"file is {candidate.size} bytes, limit is {self._config.max_file_size}",
            )
            await self._events.emit(FILE_FAIL, result)
            return result

        await self._events.emit(FILE_START, candidate)
        result = await self._upload_candidate(candidate)

        if result.success:
            await self._events.emit(FILE_COMPLETE, result)
        else:
            if result.rate_limited:
                await self._events.emit(RATE_LIMITED, result)
            await self._events.emit(FILE_FAIL, result)
        return result

    async def run(self, paths: Sequence[Path]) -> RunResult:
        """
        Process every path in order, strictly one at a time.

        Returns:
            RunResult with URLs in input order and the success, skip and
            failure counts
        """
        run_result = RunResult(total_files=len(paths))
        for path in paths:
            run_result.results.append(await self.process_file(Path(path)))

        logger.info(
            "Run finished: success=%d skipped=%d failed=%d",
            run_result.uploaded_files, run_result.skipped_files, run_result.failed_files,
        )
        await self._events.emit(FINISH, run_result)
        return run_result
