"""Services for the bunkr uploader."""
from .api_client import BunkrAPIClient
from .chunk_upload import ChunkUploader, ChunkUploadState, UploadSession
from .inspector import inspect_file
from .ledger import Ledger
from .scratch import RunContext
from .simple_upload import SimpleUploader
from .splitter import ChunkSplitter
from .token_store import TokenStore

__all__ = [
    "BunkrAPIClient",
    "ChunkUploader",
    "ChunkUploadState",
    "UploadSession",
    "inspect_file",
    "Ledger",
    "RunContext",
    "SimpleUploader",
    "ChunkSplitter",
    "TokenStore",
]
