from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List
import inspect
import logging
logger = logging.getLogger(__name__)

FILE_START = "file_start"
FILE_PROGRESS = "file_progress"
FILE_COMPLETE = "file_complete"
FILE_FAIL = "file_fail"
FILE_SKIP = "file_skip"
CHUNK_FAIL = "chunk_fail"
LEDGER_WARNING = "ledger_warning"
RATE_LIMITED = "rate_limited"
FINISH = "finish"


@dataclass
class FileProgress:
    """Progress information for a single file."""
    filename: str
    file_path: Path
    bytes_uploaded: int = 0
    total_bytes: int = 0

    @property
    def percent(self) -> float:
        if self.total_bytes <= 0:
            return 0.0
        return self.bytes_uploaded * 100.0 / self.total_bytes


@dataclass
class ChunkFailure:
    """A chunk that was skipped during a chunked upload."""
    filename: str
    chunk_index: int
    reason: str


class EventEmitter:
    """Simple event emitter for upload events."""

    def __init__(self):
        self._listeners: Dict[str, List[Callable]] = {}

    def on(self, event_name: str, callback: Callable):
        """Subscribe to an event."""
        if event_name not in self._listeners:
            self._listeners[event_name] = []
        if callback not in self._listeners[event_name]:
            self._listeners[event_name].append(callback)

    def off(self, event_name: str, callback: Callable):
        """Unsubscribe from an event."""
        if event_name in self._listeners:
            if callback in self._listeners[event_name]:
                self._listeners[event_name].remove(callback)

    async def emit(self, event_name: str, *args, **kwargs):
        """Emit an event to all listeners."""
        if event_name not in self._listeners:
            return

        for callback in self._listeners[event_name][:]:  # listeners may unsubscribe while running
            try:
                if inspect.iscoroutinefunction(callback):
                    await callback(*args, **kwargs)
                else:
                    callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in event listener for {event_name}: {e}")
