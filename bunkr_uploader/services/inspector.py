"""Builds UploadCandidate records from local files."""
import mimetypes
from pathlib import Path
from typing import Optional

from ..models import UploadCandidate

DEFAULT_MIME_TYPE = "application/octet-stream"


def guess_mime_type(path: Path) -> str:
    mime_type, _ = mimetypes.guess_type(str(path))
    return mime_type or DEFAULT_MIME_TYPE


def inspect_file(path: Path, mime_override: Optional[str] = None) -> UploadCandidate:
    """
    Measure a file once, at the start of its processing.

    Args:
        path: File to upload (made absolute)
        mime_override: MIME type forced by the user (--type)

    Raises:
        OSError: if the file cannot be stat'ed
    """
    absolute = Path(path).absolute()
    size = absolute.stat().st_size
    return UploadCandidate(
        path=absolute,
        name=absolute.name,
        size=size,
        mime_type=mime_override or guess_mime_type(absolute),
    )
