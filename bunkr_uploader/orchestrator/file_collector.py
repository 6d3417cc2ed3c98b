"""File collection for the paths given on the command line."""
import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional

logger = logging.getLogger(__name__)


class FileCollector:
    """Expands command-line paths into the ordered list of files to upload."""

    @staticmethod
    def collect_files(
        paths: Iterable,
        on_missing: Optional[Callable[[Path], None]] = None,
    ) -> List[Path]:
        """
        Collect files from paths.

        Files are kept as given, directories are expanded recursively in
        sorted order, missing paths are reported and ignored. Duplicates keep
        their first position.

        Args:
            paths: Files and/or directories
            on_missing: Called with every path that does not exist

        Returns:
            List of absolute file paths
        """
        files: List[Path] = []
        seen = set()

        def _add(item: Path) -> None:
            absolute = item.absolute()
            if absolute not in seen:
                seen.add(absolute)
                files.append(absolute)

        for raw in paths:
            path = Path(raw).expanduser()
            if path.is_file():
                _add(path)
            elif path.is_dir():
                for item in sorted(path.rglob("*")):
                    if item.is_file():
                        _add(item)
            else:
                logger.warning("Path does not exist: %s", path)
                if on_missing is not None:
                    on_missing(path)
        return files
