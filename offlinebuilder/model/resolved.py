"""
Resolved tool entity.

A ResolvedTool is the deduplicated, fetch-ready form of one tool URL. The
resolver creates it in the Pending state; afterwards only the fetcher
produces new copies of it with updated status and paths.
"""

from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FetchStatus(str, Enum):
    """Lifecycle of a tool download."""

    pending = "Pending"
    downloading = "Downloading"
    verified = "Verified"
    failed = "Failed"


class ResolvedTool(BaseModel):
    """One unique tool URL and everything known about fetching it."""

    model_config = ConfigDict(frozen=True)

    url: str
    file_name: str
    tool_names: List[str] = Field(default_factory=list)
    referencing_artifacts: List[str] = Field(default_factory=list)
    local_path: Optional[Path] = None
    extracted_path: Optional[Path] = None
    fetch_status: FetchStatus = FetchStatus.pending
    sha256: Optional[str] = None
    size_bytes: int = 0
    error: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _verified_has_file(self) -> "ResolvedTool":
        if self.fetch_status == FetchStatus.verified and self.local_path is None:
            raise ValueError("a verified tool must have a local path")
        return self

    @property
    def archive_stem(self) -> str:
        """Directory name used when the tool archive is extracted."""
        return Path(self.file_name).stem

    def with_status(self, status: FetchStatus, **changes) -> "ResolvedTool":
        """Return a copy in a new fetch state."""
        return self.model_copy(update={"fetch_status": status, **changes})
