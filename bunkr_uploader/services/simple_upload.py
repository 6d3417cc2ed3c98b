"""Single-request upload for files below the chunk threshold."""
import asyncio
import logging
from typing import Optional

from ..exceptions import LedgerError
from ..models import UploadCandidate, UploadResult
from ..protocols import ILedger, IUploadClient

logger = logging.getLogger(__name__)


class SimpleUploader:
    """Reads the whole file and posts it as one multipart request."""

    def __init__(self, client: IUploadClient, ledger: ILedger):
        self._client = client
        self._ledger = ledger

    async def upload(
        self,
        candidate: UploadCandidate,
        upload_url: str,
        album_id: Optional[str] = None,
    ) -> UploadResult:
        try:
            content = await asyncio.to_thread(candidate.path.read_bytes)
        except OSError as e:
            logger.error("Failed to read %s: %s", candidate.path, e)
            return UploadResult.fail(candidate.path, candidate.name, f"read failed: {e}")

        response = await self._client.upload_file(upload_url, candidate.name, content, album_id)

        if response.status_code is not None and response.status_code != 200:
            logger.warning("Failed to upload %s: status %s", candidate.name, response.status_code)
        if response.rate_limited:
            logger.warning("Rate limited while uploading %s", candidate.name)

        if not response.has_url:
            logger.error("Upload of %s failed: %s", candidate.name, response.describe())
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

        logger.info("Uploaded %s -> %s", candidate.name, url)
        return UploadResult.ok(candidate.path, candidate.name, url)
