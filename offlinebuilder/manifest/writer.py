"""
Build the manifest aggregate and write its three views.

The Manifest model is assembled once from immutable per-artifact and
per-tool results. The JSON document, the CSV tool list and the text report
are all projections of that single aggregate.
"""

import csv
import io
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from offlinebuilder.constants import MANIFEST_JSON, SUMMARY_TXT, TOOLS_CSV
from offlinebuilder.exceptions import WorkspaceWriteError
from offlinebuilder.model import (
    ArtifactDefinition,
    ArtifactToolEntry,
    FetchStatus,
    Manifest,
    ManifestEntry,
    ManifestSummary,
    ResolvedTool,
    ToolEntry,
)
from offlinebuilder.utils import sizeof_fmt
from offlinebuilder.validators import ValidationResult

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["Artifact", "Url", "FileName", "ExtractedTo", "Status"]


@dataclass(frozen=True)
class ArtifactRecord:
    """Everything known about one definition file after scanning."""

    definition: ArtifactDefinition
    references: tuple
    validation: ValidationResult
    relative_path: str


def _relative(path: Optional[Path], root: Optional[Path]) -> Optional[str]:
    if path is None:
        return None
    if root is not None:
        try:
            return Path(path).relative_to(root).as_posix()
        except ValueError:
            pass
    return Path(path).as_posix()


def _tool_entry(tool: ResolvedTool, workspace: Optional[Path]) -> ToolEntry:
    return ToolEntry(
        url=tool.url,
        file_name=tool.file_name,
        tool_names=tool.tool_names,
        referencing_artifacts=tool.referencing_artifacts,
        status=tool.fetch_status,
        local_path=_relative(tool.local_path, workspace),
        extracted_to=_relative(tool.extracted_path, workspace),
        sha256=tool.sha256,
        size_bytes=tool.size_bytes,
        error=tool.error,
        warnings=tool.warnings,
    )


def _artifact_entry(
    record: ArtifactRecord, tools: Dict[str, ToolEntry]
) -> ManifestEntry:
    details = []
    for reference in record.references:
        tool = tools.get(reference.url.strip())
        details.append(
            ArtifactToolEntry(
                name=reference.tool_name,
                url=reference.url.strip(),
                file_name=tool.file_name if tool else "",
                status=tool.status if tool else FetchStatus.pending,
                extracted_to=tool.extracted_to if tool else None,
            )
        )

    definition = record.definition
    return ManifestEntry(
        name=definition.name,
        author=definition.author,
        platform=definition.platform.value,
        source_file=record.relative_path,
        tool_count=len(details),
        tools=[detail.name for detail in details],
        tool_details=details,
        validation_score=record.validation.score,
        is_valid=record.validation.is_valid,
        errors=list(record.validation.errors),
        warnings=list(record.validation.warnings),
    )


def build_manifest(
    records: Iterable[ArtifactRecord],
    tools: Iterable[ResolvedTool],
    version: str,
    generated_at: str,
    workspace: Optional[Path] = None,
    skipped_files: Sequence[str] = (),
    duplicate_names: Sequence[str] = (),
) -> Manifest:
    """Fold per-artifact and per-tool results into one Manifest.

    Args:
        records: One ArtifactRecord per parsed definition
        tools: Every ResolvedTool, fetched or not
        version: Corpus version the package is built for
        generated_at: Timestamp string stored in the manifest
        workspace: Root that tool paths are made relative to
        skipped_files: Definition files that could not be read
        duplicate_names: Artifact names that occur more than once
    """
    tool_entries = sorted(
        (_tool_entry(tool, workspace) for tool in tools), key=lambda t: t.url
    )
    by_url = {tool.url: tool for tool in tool_entries}

    entries = sorted(
        (_artifact_entry(record, by_url) for record in records),
        key=lambda e: (e.name, e.source_file),
    )

    def count_status(status: FetchStatus) -> int:
        return sum(1 for tool in tool_entries if tool.status == status)

    with_tools = sum(1 for entry in entries if entry.tool_count > 0)
    summary = ManifestSummary(
        total_artifacts=len(entries),
        total_tools=len(tool_entries),
        artifacts_with_tools=with_tools,
        artifacts_without_tools=len(entries) - with_tools,
        verified_tools=count_status(FetchStatus.verified),
        failed_tools=count_status(FetchStatus.failed),
        pending_tools=count_status(FetchStatus.pending),
        invalid_artifacts=sum(1 for entry in entries if not entry.is_valid),
        skipped_files=sorted(skipped_files),
        duplicate_names=sorted(duplicate_names),
    )

    return Manifest(
        version=version,
        generated_at=generated_at,
        summary=summary,
        artifacts=entries,
        tools=tool_entries,
    )


# Projections


def manifest_to_json(manifest: Manifest) -> str:
    data = manifest.model_dump(mode="json", by_alias=True)
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def tool_rows(manifest: Manifest) -> List[Dict[str, str]]:
    """One CSV row per unique tool URL."""
    return [
        {
            "Artifact": "; ".join(tool.referencing_artifacts),
            "Url": tool.url,
            "FileName": tool.file_name,
            "ExtractedTo": tool.extracted_to or "",
            "Status": tool.status.value,
        }
        for tool in manifest.tools
    ]


def manifest_to_csv(manifest: Manifest) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS, lineterminator="\n")
    writer.writeheader()
    writer.writerows(tool_rows(manifest))
    return buffer.getvalue()


def manifest_to_text(manifest: Manifest) -> str:
    """Human-readable report for operators."""
    s = manifest.summary
    lines = [
        f"Offline package v{manifest.version}",
        f"Generated: {manifest.generated_at}",
        "",
        "Summary",
        "-------",
        f"Artifacts:               {s.total_artifacts}",
        f"  with tools:            {s.artifacts_with_tools}",
        f"  without tools:         {s.artifacts_without_tools}",
        f"  invalid:               {s.invalid_artifacts}",
        f"Unique tools:            {s.total_tools}",
        f"  verified:              {s.verified_tools}",
        f"  failed:                {s.failed_tools}",
        f"  not fetched:           {s.pending_tools}",
        f"Unreadable files:        {len(s.skipped_files)}",
    ]

    failed = [tool for tool in manifest.tools if tool.status == FetchStatus.failed]
    if failed:
        lines += ["", "Failed tools", "------------"]
        for tool in failed:
            lines.append(f"{tool.file_name} <{tool.url}>")
            lines.append(f"    needed by: {', '.join(tool.referencing_artifacts)}")
            lines.append(f"    reason: {tool.error or 'unknown'}")

    verified = [tool for tool in manifest.tools if tool.status == FetchStatus.verified]
    if verified:
        lines += ["", "Fetched tools", "-------------"]
        for tool in verified:
            lines.append(
                f"{tool.file_name} ({sizeof_fmt(tool.size_bytes)}) sha256={tool.sha256}"
            )
            for warning in tool.warnings:
                lines.append(f"    warning: {warning}")

    invalid = [entry for entry in manifest.artifacts if not entry.is_valid]
    if invalid:
        lines += ["", "Invalid artifacts", "-----------------"]
        for entry in invalid:
            lines.append(f"{entry.name or '<unnamed>'} ({entry.source_file})")
            for error in entry.errors:
                lines.append(f"    error: {error}")

    if s.duplicate_names:
        lines += ["", "Duplicate artifact names", "------------------------"]
        lines += s.duplicate_names

    if s.skipped_files:
        lines += ["", "Unreadable files", "----------------"]
        lines += s.skipped_files

    lines += ["", "Artifacts", "---------"]
    for entry in manifest.artifacts:
        tools = ", ".join(entry.tools) if entry.tools else "-"
        lines.append(
            f"{entry.validation_score:>3}  {entry.name or '<unnamed>'} "
            f"[{entry.platform}] tools: {tools}"
        )

    return "\n".join(lines) + "\n"


def write_manifests(manifest: Manifest, workspace: Path) -> Dict[str, Path]:
    """Write the JSON, CSV and text views into the workspace root.

    Raises:
        WorkspaceWriteError: if any of the files cannot be written
    """
    outputs = {
        "json": (workspace / MANIFEST_JSON, manifest_to_json(manifest)),
        "csv": (workspace / TOOLS_CSV, manifest_to_csv(manifest)),
        "text": (workspace / SUMMARY_TXT, manifest_to_text(manifest)),
    }
    written = {}
    for kind, (path, content) in outputs.items():
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise WorkspaceWriteError(path, str(e)) from e
        logger.debug(f"Wrote {kind} manifest to {path}")
        written[kind] = path
    return written
