from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from .config import DEFAULT_ARCHIVE_FORMAT

if TYPE_CHECKING:
    from .model import Model


class JobRegistry:
    """Job definitions accumulated while a job file is loaded."""

    def __init__(self) -> None:
        self.current_job: Optional["Model"] = None
        self.all_jobs: List["Model"] = []
        self.default_archive_format: str = DEFAULT_ARCHIVE_FORMAT

    def register(self, model: "Model") -> None:
        self.all_jobs.append(model)
        self.current_job = model

    def find(self, trigger: str) -> Optional["Model"]:
        for model in self.all_jobs:
            if model.trigger == trigger:
                return model
        return None

    def reset(self) -> None:
        self.current_job = None
        self.all_jobs = []
        self.default_archive_format = DEFAULT_ARCHIVE_FORMAT

    @property
    def empty(self) -> bool:
        return self.current_job is None and not self.all_jobs
