"""
Ledger - append-only record of uploaded files.

Each successful upload appends two lines: the absolute file path and the
display name. The file is never rewritten. A path counts as uploaded when it
appears anywhere in the ledger text.
"""
import asyncio
import logging
import os
from pathlib import Path
from typing import Optional, Union

from ..exceptions import LedgerError
from ..utils.events import LEDGER_WARNING, EventEmitter

logger = logging.getLogger(__name__)

DEFAULT_LEDGER_FILE = "logs.txt"
MATCH_SUBSTRING = "substring"
MATCH_LINE = "line"


class Ledger:
    """
    Flat text ledger of uploaded files.

    The content is re-read on every lookup so entries appended earlier in
    the same run are seen by later lookups. Read and write failures are
    emitted as `ledger_warning` events so they reach the user even when
    logging is off.
    """

    def __init__(
        self,
        path: Path,
        match: str = MATCH_SUBSTRING,
        emitter: Optional[EventEmitter] = None,
    ):
        """
        Initialize ledger.

        Args:
            path: Ledger file location (created on first append)
            match: "substring" (any occurrence of the path in the text) or
                "line" (the path must be a whole line)
            emitter: Receives `ledger_warning` events
        """
        if match not in (MATCH_SUBSTRING, MATCH_LINE):
            raise ValueError(f"unknown ledger match mode: {match}")
        self._path = Path(path)
        self._match = match
        self._emitter = emitter or EventEmitter()

    @property
    def path(self) -> Path:
        return self._path

    def _read_text(self) -> str:
        try:
            return self._path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return ""

    def _append_sync(self, file_path: str, display_name: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "a", encoding="utf-8") as f:
            f.write(f"{file_path}\n")
            f.write(f"{display_name}\n")
            f.flush()
            os.fsync(f.fileno())

    async def _warn(self, message: str) -> None:
        logger.warning("Ledger: %s", message)
        await self._emitter.emit(LEDGER_WARNING, message)

    async def has_record(self, file_path: Union[str, Path]) -> bool:
        """
        Check whether `file_path` was recorded by a previous upload.

        An unreadable ledger counts as empty.
        """
        try:
            content = await asyncio.to_thread(self._read_text)
        except OSError as e:
            await self._warn(f"Failed to read from logs file {self._path}: {e}")
            return False
        if not content:
            return False

        needle = str(file_path)
        if self._match == MATCH_LINE:
            found = needle in content.splitlines()
        else:
            found = needle in content

        if found:
            logger.debug("Ledger: HIT - %s", needle)
        return found

    async def append(self, file_path: Union[str, Path], display_name: str) -> None:
        """
        Record a successful upload.

        The entry is flushed and synced before returning. A failed append
        leaves the ledger usable for later appends.

        Raises:
            LedgerError: if the entry cannot be written
        """
        try:
            await asyncio.to_thread(self._append_sync, str(file_path), display_name)
        except OSError as e:
            message = f"Failed to write to logs file {self._path}: {e}"
            await self._warn(f"{message} ({display_name} will be uploaded again next run)")
            raise LedgerError(message) from e
        logger.debug("Ledger: Recorded - %s", file_path)
