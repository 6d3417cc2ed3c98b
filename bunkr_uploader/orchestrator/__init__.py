"""Orchestrator package - coordinates a run."""
from .core import UploadOrchestrator
from .file_collector import FileCollector
from .models import RunResult

__all__ = ["UploadOrchestrator", "FileCollector", "RunResult"]
