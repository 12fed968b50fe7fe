"""Pydantic models for the aggregated build manifest.

Field aliases give the serialised (PascalCase) names. Build the models with
the Python field names and dump with ``by_alias=True``.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .resolved import FetchStatus


class _ManifestModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ToolEntry(_ManifestModel):
    """Fetch outcome of one unique tool."""

    url: str = Field(..., alias="Url")
    file_name: str = Field(..., alias="FileName")
    tool_names: List[str] = Field(default_factory=list, alias="ToolNames")
    referencing_artifacts: List[str] = Field(
        default_factory=list, alias="ReferencingArtifacts"
    )
    status: FetchStatus = Field(FetchStatus.pending, alias="Status")
    local_path: Optional[str] = Field(None, alias="LocalPath")
    extracted_to: Optional[str] = Field(None, alias="ExtractedTo")
    sha256: Optional[str] = Field(None, alias="Sha256")
    size_bytes: int = Field(0, alias="SizeBytes")
    error: Optional[str] = Field(None, alias="Error")
    warnings: List[str] = Field(default_factory=list, alias="Warnings")


class ArtifactToolEntry(_ManifestModel):
    """One tool reference of an artifact joined with its fetch outcome."""

    name: str = Field(..., alias="Name")
    url: str = Field(..., alias="Url")
    file_name: str = Field(..., alias="FileName")
    status: FetchStatus = Field(..., alias="Status")
    extracted_to: Optional[str] = Field(None, alias="ExtractedTo")


class ManifestEntry(_ManifestModel):
    """Join of an artifact, its tool references and its validation result."""

    name: str = Field(..., alias="Name")
    author: str = Field("", alias="Author")
    platform: str = Field(..., alias="Platform")
    source_file: str = Field(..., alias="SourceFile")
    tool_count: int = Field(0, alias="ToolCount")
    tools: List[str] = Field(default_factory=list, alias="Tools")
    tool_details: List[ArtifactToolEntry] = Field(
        default_factory=list, alias="ToolDetails"
    )
    validation_score: int = Field(0, alias="ValidationScore")
    is_valid: bool = Field(True, alias="IsValid")
    errors: List[str] = Field(default_factory=list, alias="Errors")
    warnings: List[str] = Field(default_factory=list, alias="Warnings")


class ManifestSummary(_ManifestModel):
    total_artifacts: int = Field(0, alias="TotalArtifacts")
    total_tools: int = Field(0, alias="TotalTools")
    artifacts_with_tools: int = Field(0, alias="ArtifactsWithTools")
    artifacts_without_tools: int = Field(0, alias="ArtifactsWithoutTools")
    verified_tools: int = Field(0, alias="VerifiedTools")
    failed_tools: int = Field(0, alias="FailedTools")
    pending_tools: int = Field(0, alias="PendingTools")
    invalid_artifacts: int = Field(0, alias="InvalidArtifacts")
    skipped_files: List[str] = Field(default_factory=list, alias="SkippedFiles")
    duplicate_names: List[str] = Field(default_factory=list, alias="DuplicateNames")


class Manifest(_ManifestModel):
    """The in-memory aggregate all manifest views are projected from."""

    version: str = Field(..., alias="Version")
    generated_at: str = Field(..., alias="GeneratedAt")
    summary: ManifestSummary = Field(..., alias="Summary")
    artifacts: List[ManifestEntry] = Field(default_factory=list, alias="Artifacts")
    tools: List[ToolEntry] = Field(default_factory=list, alias="Tools")
