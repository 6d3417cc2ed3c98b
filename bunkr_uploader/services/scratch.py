"""
Run context - owns the per-run scratch directory.

The scratch directory lives under the resources directory and is named by a
random alphanumeric token so concurrent invocations do not collide. Entering
the context removes scratch directories orphaned by crashed runs, then
creates this run's directory; leaving it removes the directory on every exit
path.
"""
import logging
import re
import secrets
import shutil
import string
from pathlib import Path
from typing import Optional

from ..exceptions import RunError
from .splitter import CHUNK_PREFIX

logger = logging.getLogger(__name__)

TOKEN_ALPHABET = string.ascii_letters + string.digits
TOKEN_LENGTH = 10
CHUNK_NAME_RE = re.compile(re.escape(CHUNK_PREFIX) + r"\d+")


def random_token(length: int = TOKEN_LENGTH) -> str:
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


class RunContext:
    """
    Scoped owner of the scratch directory for one run.

    Usage:
        async with RunContext(resources_dir) as run:
            count = await splitter.split(path, run.scratch_dir, chunk_size)
    """

    def __init__(self, resources_dir: Path, token: Optional[str] = None):
        self._resources_dir = Path(resources_dir)
        self._token = token or random_token()
        self._scratch_dir: Optional[Path] = None

    @property
    def resources_dir(self) -> Path:
        return self._resources_dir

    @property
    def scratch_dir(self) -> Path:
        if self._scratch_dir is None:
            raise RuntimeError("RunContext not entered. Use 'async with' context.")
        return self._scratch_dir

    @staticmethod
    def is_scratch_dir(entry: Path) -> bool:
        """A token-named directory holding nothing but chunk files."""
        name = entry.name
        if len(name) != TOKEN_LENGTH or not all(c in TOKEN_ALPHABET for c in name):
            return False
        try:
            children = list(entry.iterdir())
        except OSError:
            return False
        return all(child.is_file() and CHUNK_NAME_RE.fullmatch(child.name) for child in children)

    def remove_orphans(self) -> int:
        """Delete scratch directories left behind by crashed runs."""
        if not self._resources_dir.exists():
            return 0

        removed = 0
        try:
            entries = list(self._resources_dir.iterdir())
        except OSError as e:
            logger.warning("Failed to read resources path %s: %s", self._resources_dir, e)
            return 0

        for entry in entries:
            if not entry.is_dir() or entry.is_symlink():
                continue
            if not self.is_scratch_dir(entry):
                logger.debug("Keeping %s, not a chunk directory", entry)
                continue
            try:
                shutil.rmtree(entry)
            except OSError as e:
                raise RunError(f"failed to remove chunk directory {entry}: {e}") from e
            removed += 1

        if removed:
            logger.info("Removed %d orphaned chunk directories", removed)
        return removed

    def open(self) -> Path:
        self.remove_orphans()
        scratch_dir = self._resources_dir / self._token
        try:
            scratch_dir.mkdir(parents=True, exist_ok=False)
        except OSError as e:
            raise RunError(f"failed to create chunks directory {scratch_dir}: {e}") from e
        self._scratch_dir = scratch_dir
        logger.debug("Scratch directory: %s", scratch_dir)
        return scratch_dir

    def close(self) -> None:
        if self._scratch_dir is None:
            return
        scratch_dir, self._scratch_dir = self._scratch_dir, None
        try:
            shutil.rmtree(scratch_dir)
        except FileNotFoundError:
            return
        except OSError as e:
            raise RunError(f"failed to remove chunks directory {scratch_dir}: {e}") from e

    async def __aenter__(self):
        self.open()
        return self

    async def __aexit__(self, *args):
        self.close()
