"""Orchestrator data models."""
from dataclasses import dataclass, field
from typing import List

from ..models import UploadResult


@dataclass
class RunResult:
    """Result of one run, per-file results kept in input order."""
    total_files: int
    results: List[UploadResult] = field(default_factory=list)

    @property
    def urls(self) -> List[str]:
        return [r.url for r in self.results if r.success and r.url]

    @property
    def uploaded_files(self) -> int:
        return len(self.urls)

    @property
    def skipped_files(self) -> int:
        return sum(1 for r in self.results if r.skipped)

    @property
    def failed_files(self) -> int:
        return self.total_files - self.uploaded_files - self.skipped_files

    @property
    def all_success(self) -> bool:
        return self.failed_files == 0
