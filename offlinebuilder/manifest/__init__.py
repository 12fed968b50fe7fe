"""Manifest aggregation and its JSON, CSV and text projections."""

from offlinebuilder.manifest.writer import (
    ArtifactRecord,
    build_manifest,
    manifest_to_csv,
    manifest_to_json,
    manifest_to_text,
    tool_rows,
    write_manifests,
)

__all__ = [
    "ArtifactRecord",
    "build_manifest",
    "manifest_to_csv",
    "manifest_to_json",
    "manifest_to_text",
    "tool_rows",
    "write_manifests",
]
