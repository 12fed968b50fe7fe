"""Pydantic models for the offline builder."""

from offlinebuilder.model.artifact import (
    ArtifactDefinition,
    ParseFailure,
    Platform,
    ToolReference,
)
from offlinebuilder.model.manifest import (
    ArtifactToolEntry,
    Manifest,
    ManifestEntry,
    ManifestSummary,
    ToolEntry,
)
from offlinebuilder.model.resolved import FetchStatus, ResolvedTool

__all__ = [
    # Corpus
    "ArtifactDefinition",
    "ParseFailure",
    "Platform",
    "ToolReference",
    # Resolution
    "FetchStatus",
    "ResolvedTool",
    # Manifest
    "ArtifactToolEntry",
    "Manifest",
    "ManifestEntry",
    "ManifestSummary",
    "ToolEntry",
]
