"""
bunkr_uploader - chunked uploads to a bunkr dashboard.

Small files go up in a single request; files of 25 MB and more are split
into 25,000,000-byte chunks, uploaded chunk by chunk and reassembled by the
server. Successful uploads are recorded in an append-only ledger so reruns
skip them.

Usage:
    from bunkr_uploader import UploadOrchestrator, UploadConfig

    async with UploadOrchestrator(token, resources_dir) as uploader:
        result = await uploader.run(paths)

    print(result.urls, result.uploaded_files, result.skipped_files, result.failed_files)
"""
from .orchestrator import UploadOrchestrator, RunResult, FileCollector
from .models import (
    UploadCandidate,
    UploadConfig,
    UploadResponse,
    UploadResult,
    UploadStatus,
    FileRef,
    ResponseKind,
)
from .services import BunkrAPIClient, Ledger

__version__ = "0.1.0"

__all__ = [
    "UploadOrchestrator",
    "RunResult",
    "FileCollector",
    "UploadCandidate",
    "UploadConfig",
    "UploadResponse",
    "UploadResult",
    "UploadStatus",
    "FileRef",
    "ResponseKind",
    "BunkrAPIClient",
    "Ledger",
]
