"""Pydantic models for parsed artifact definitions and their tool references."""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Platform(str, Enum):
    """Target platform of an artifact."""

    windows = "Windows"
    linux = "Linux"
    macos = "MacOS"
    generic = "Generic"

    @classmethod
    def from_label(cls, label: Optional[str]) -> Optional["Platform"]:
        """Map a directory name or supported_os entry to a platform.

        Returns None for anything unrecognised.
        """
        if not label:
            return None
        return _PLATFORM_ALIASES.get(label.strip().strip("'\"").lower())


_PLATFORM_ALIASES = {
    "windows": Platform.windows,
    "win": Platform.windows,
    "linux": Platform.linux,
    "macos": Platform.macos,
    "mac": Platform.macos,
    "osx": Platform.macos,
    "darwin": Platform.macos,
    "generic": Platform.generic,
}


class ArtifactDefinition(BaseModel):
    """One artifact definition file, parsed best-effort.

    Every field except the source path has a default, so a definition with
    missing or malformed fields is still representable.
    """

    model_config = ConfigDict(frozen=True)

    name: str = ""
    author: str = ""
    description: str = ""
    platform: Platform = Platform.generic
    parameters: List[str] = Field(default_factory=list)
    preconditions: List[str] = Field(default_factory=list)
    source_file: Path
    size_bytes: int = 0
    last_modified: Optional[datetime] = None

    # Structure flags, used for scoring
    has_sources: bool = False
    has_parameters: bool = False
    has_precondition: bool = False

    # Raw text of the sources block. Opaque, never evaluated.
    sources_text: str = ""

    @property
    def display_name(self) -> str:
        """Name used for ownership and reporting, the file stem if unnamed."""
        return self.name or self.source_file.stem


class ParseFailure(BaseModel):
    """A definition that could not be turned into an ArtifactDefinition."""

    model_config = ConfigDict(frozen=True)

    path: Path
    reason: str


class ToolReference(BaseModel):
    """A declared dependency of an artifact on a downloadable tool."""

    model_config = ConfigDict(frozen=True)

    artifact_name: str
    tool_name: str
    url: str
