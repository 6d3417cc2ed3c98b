"""Token file storage under the resources directory."""
import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_FILE = "token.txt"


class TokenStore:
    """Reads and writes the dashboard token kept between runs."""

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[str]:
        try:
            token = self._path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("TokenStore: Failed to read %s: %s", self._path, e)
            return None
        return token or None

    def save(self, token: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(token.strip() + "\n", encoding="utf-8")
        try:
            os.chmod(self._path, 0o600)
        except OSError:
            logger.debug("TokenStore: could not restrict permissions on %s", self._path)
        logger.info("TokenStore: Saved token to %s", self._path)
