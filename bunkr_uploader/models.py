"""
Models for the bunkr uploader.

Immutable dataclasses describing upload candidates, server responses and
per-file outcomes.
"""
import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Tuple

# Files at or above this size are refused before any request
MAX_FILE_SIZE = 2000 * 1000 * 1000
# Fixed size of every chunk except the last one
CHUNK_SIZE = 25 * 1000 * 1000
# Files strictly below this size use a single request
CHUNK_THRESHOLD = 25 * 1000 * 1000

RATE_LIMIT_STATUS = 500


@dataclass(frozen=True)
class UploadCandidate:
    """A local file about to be processed."""
    path: Path  # absolute
    name: str
    size: int
    mime_type: str


@dataclass(frozen=True)
class FileRef:
    """One entry of the `files` array returned by the upload endpoints."""
    name: str
    url: str


class ResponseKind(Enum):
    """Outcome of an upload-endpoint request."""
    SUCCESS = "success"
    MALFORMED = "malformed"
    TRANSPORT_ERROR = "transport_error"
    HTTP_ERROR = "http_error"


@dataclass(frozen=True)
class UploadResponse:
    """
    Tagged result of a simple upload, chunk upload or finish call.

    Only SUCCESS responses carry files. A SUCCESS response may still have an
    empty `files` tuple (chunk requests answer without one); callers that need
    a URL go through `url`, which rejects that case.
    """
    kind: ResponseKind
    files: Tuple[FileRef, ...] = ()
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind == ResponseKind.SUCCESS

    @property
    def has_url(self) -> bool:
        return self.ok and bool(self.files) and bool(self.files[0].url)

    @property
    def rate_limited(self) -> bool:
        return self.status_code == RATE_LIMIT_STATUS

    @property
    def url(self) -> str:
        """URL of the first returned file."""
        if not self.ok:
            raise ValueError(f"response is not successful: {self.describe()}")
        if not self.has_url:
            raise ValueError("response has no files")
        return self.files[0].url

    def describe(self) -> str:
        if self.kind == ResponseKind.HTTP_ERROR:
            return f"Status Code: {self.status_code} - Response: {self.error}"
        if self.error:
            return self.error
        if self.ok and not self.has_url:
            return "response has no files"
        return self.kind.value

    @classmethod
    def success(cls, files=(), status_code: Optional[int] = None):
        return cls(kind=ResponseKind.SUCCESS, files=tuple(files), status_code=status_code)

    @classmethod
    def malformed(cls, error: str, status_code: Optional[int] = None):
        return cls(kind=ResponseKind.MALFORMED, status_code=status_code, error=error)

    @classmethod
    def transport_error(cls, error: str):
        return cls(kind=ResponseKind.TRANSPORT_ERROR, error=error)

    @classmethod
    def http_error(cls, status_code: int, body: str = ""):
        return cls(kind=ResponseKind.HTTP_ERROR, status_code=status_code, error=body)

    @classmethod
    def parse(cls, status_code: int, body: str, require_files: bool = True) -> "UploadResponse":
        """
        Map an HTTP status and body into a tagged response.

        Args:
            status_code: HTTP status of the response
            body: Raw response text
            require_files: Treat a missing or empty `files` array as malformed

        Returns:
            UploadResponse
        """
        if not 200 <= status_code < 300:
            return cls.http_error(status_code, body)

        try:
            data: Any = json.loads(body)
        except ValueError as exc:
            return cls.malformed(f"invalid JSON: {exc}", status_code)

        if not isinstance(data, dict):
            return cls.malformed("response is not a JSON object", status_code)

        if data.get("success") is False:
            description = data.get("description") or "server reported success=false"
            return cls.malformed(str(description), status_code)

        raw_files = data.get("files") or []
        if not isinstance(raw_files, list):
            return cls.malformed("`files` is not a list", status_code)

        files = []
        for item in raw_files:
            if not isinstance(item, dict):
                return cls.malformed("`files` entry is not an object", status_code)
            files.append(FileRef(name=str(item.get("name", "")), url=str(item.get("url", ""))))

        if require_files and not files:
            return cls.malformed("response has no files", status_code)

        return cls.success(files, status_code)


class UploadStatus(Enum):
    """Per-file outcome."""
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class UploadResult:
    """Immutable result of processing one candidate."""
    path: Path
    filename: str
    status: UploadStatus = UploadStatus.SUCCESS
    url: Optional[str] = None
    error: Optional[str] = None
    rate_limited: bool = False

    @property
    def success(self) -> bool:
        return self.status == UploadStatus.SUCCESS

    @property
    def skipped(self) -> bool:
        return self.status == UploadStatus.SKIPPED

    @classmethod
    def ok(cls, path: Path, filename: str, url: str):
        return cls(path=path, filename=filename, status=UploadStatus.SUCCESS, url=url)

    @classmethod
    def fail(cls, path: Path, filename: str, error: str, rate_limited: bool = False):
        return cls(
            path=path,
            filename=filename,
            status=UploadStatus.FAILED,
            error=error,
            rate_limited=rate_limited,
        )

    @classmethod
    def skip(cls, path: Path, filename: str, reason: str = "already uploaded"):
        return cls(path=path, filename=filename, status=UploadStatus.SKIPPED, error=reason)


@dataclass(frozen=True)
class Album:
    """Album listed by the dashboard."""
    id: str
    name: str


@dataclass(frozen=True)
class UploadConfig:
    """Immutable configuration for a run."""
    chunk_size: int = CHUNK_SIZE
    chunk_threshold: int = CHUNK_THRESHOLD
    max_file_size: int = MAX_FILE_SIZE
    chunk_retries: int = 0  # extra attempts per chunk after the first
    force: bool = False
    mime_type: Optional[str] = None
    ledger_match: str = "substring"  # substring | line
    timeout: Optional[float] = None  # None waits until response or transport error

    def needs_chunking(self, size: int) -> bool:
        return size >= self.chunk_threshold

    def is_oversized(self, size: int) -> bool:
        return size >= self.max_file_size

