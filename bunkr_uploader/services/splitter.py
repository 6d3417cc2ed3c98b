"""
Chunk splitter - writes a file out as chunk_0 .. chunk_{N-1}.

Every chunk but the last holds exactly `chunk_size` bytes. The number of
chunk files written is the chunk count used by the upload protocol, so a
file that changes size between stat and split still uploads consistently.
"""
import asyncio
import logging
from pathlib import Path

from ..exceptions import SplitError

logger = logging.getLogger(__name__)

CHUNK_PREFIX = "chunk_"


def chunk_name(index: int) -> str:
    return f"{CHUNK_PREFIX}{index}"


def chunk_path(scratch_dir: Path, index: int) -> Path:
    return Path(scratch_dir) / chunk_name(index)


class ChunkSplitter:
    """Splits files into fixed-size chunk files inside a scratch directory."""

    @staticmethod
    def split_sync(file_path: Path, scratch_dir: Path, chunk_size: int) -> int:
        """
        Split `file_path` into chunk files.

        Args:
            file_path: Source file
            scratch_dir: Existing directory receiving the chunk files
            chunk_size: Bytes per chunk

        Returns:
            Number of chunk files written (0 for an empty file)

        Raises:
            SplitError: if the source cannot be read or a chunk cannot be written
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")

        try:
            source = open(file_path, "rb")
        except OSError as e:
            raise SplitError(f"cannot open {file_path}: {e}") from e

        count = 0
        with source:
            while True:
                try:
                    data = source.read(chunk_size)
                except OSError as e:
                    raise SplitError(f"cannot read {file_path}: {e}") from e
                if not data:
                    break

                target = chunk_path(scratch_dir, count)
                try:
                    target.write_bytes(data)
                except OSError as e:
                    raise SplitError(f"cannot write {target}: {e}") from e
                count += 1

        logger.debug("Split %s into %d chunks of %d bytes", file_path, count, chunk_size)
        return count

    async def split(self, file_path: Path, scratch_dir: Path, chunk_size: int) -> int:
        """Split in a worker thread to keep the event loop free."""
        return await asyncio.to_thread(self.split_sync, Path(file_path), Path(scratch_dir), chunk_size)
