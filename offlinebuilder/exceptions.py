"""
Exception classes for the offline builder.

Only WorkspaceWriteError and PackageError abort a build. Everything else is
recovered where it happens and surfaced as data in the manifest.
"""

from pathlib import Path
from typing import Union


class OfflineBuilderError(Exception):
    """Base exception for all offline builder errors."""

    pass


class FileReadError(OfflineBuilderError):
    """Raised when a definition file cannot be read or decoded."""

    def __init__(self, path: Union[str, Path], reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Could not read {self.path}: {reason}")


class ParseAnomaly(OfflineBuilderError):
    """Raised internally for malformed content. Never fatal."""

    pass


class NetworkFetchError(OfflineBuilderError):
    """Raised when a tool download fails."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")


class ArchiveExtractError(OfflineBuilderError):
    """Raised when a fetched archive cannot be unpacked."""

    def __init__(self, archive: Union[str, Path], reason: str):
        self.archive = Path(archive)
        self.reason = reason
        super().__init__(f"Could not extract {self.archive.name}: {reason}")


class WorkspaceWriteError(OfflineBuilderError):
    """Raised when the workspace cannot be created or written to."""

    def __init__(self, path: Union[str, Path], reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Cannot write to workspace at {self.path}: {reason}")


class PackageError(OfflineBuilderError):
    """Raised when the final archive cannot be produced."""

    pass


# Quality findings. These are returned inside Failure containers by the
# validator and are never raised.


class QualityFinding(OfflineBuilderError):
    """Base class for findings produced by the quality validator."""

    pass


class MissingFieldError(QualityFinding):
    """A scalar field is absent or empty."""

    pass


class MissingSectionError(QualityFinding):
    """A structural block (sources, parameters, precondition) is absent."""

    pass


class HeuristicWarning(QualityFinding):
    """A platform heuristic did not match."""

    pass
