"""Publish target model."""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class PublishTarget:
    """Where build output is published. Fixed for the whole run."""

    remote_name: str
    branch_name: str
    working_directory_path: Path

    def __str__(self) -> str:
        return f"{self.remote_name}/{self.branch_name}"
