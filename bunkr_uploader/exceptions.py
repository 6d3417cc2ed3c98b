"""
Exceptions raised by the bunkr uploader.

Per-chunk and per-file HTTP failures are not raised; they are mapped into
UploadResponse values. These exceptions cover local I/O, run setup and the
dashboard API calls made before uploading starts.
"""
from typing import Optional


class BunkrUploaderError(Exception):
    """Base exception for all uploader errors."""
    pass


class LedgerError(BunkrUploaderError):
    """Raised when an entry cannot be appended to the upload ledger."""
    pass


class SplitError(BunkrUploaderError):
    """Raised when a file cannot be split into chunk files."""
    pass


class RunError(BunkrUploaderError):
    """Raised when the run scratch directory cannot be prepared or removed."""
    pass


class APIError(BunkrUploaderError):
    """Raised by dashboard API calls (node lookup, albums, token check)."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            status_code: HTTP status code (if a response was received)
        """
        self.status_code = status_code
        super().__init__(message)


class AuthenticationError(APIError):
    """Raised when the dashboard rejects the token."""
    pass
