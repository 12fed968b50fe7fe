import csv
import io
import json
from pathlib import Path

import pytest

from offlinebuilder.constants import MANIFEST_JSON, SUMMARY_TXT, TOOLS_CSV
from offlinebuilder.exceptions import WorkspaceWriteError
from offlinebuilder.manifest import (
    ArtifactRecord,
    build_manifest,
    manifest_to_csv,
    manifest_to_json,
    manifest_to_text,
    write_manifests,
)
from offlinebuilder.model import ArtifactDefinition, FetchStatus, ResolvedTool, ToolReference
from offlinebuilder.validators import validate_definition

WORKSPACE = Path("/ws/offline_builder_v1.0")


def record(name, urls=(), relative_path=None, **fields):
    definition = ArtifactDefinition(
        name=name,
        source_file=Path("/corpus") / (relative_path or f"{name}.yaml"),
        has_sources=bool(urls),
        **fields,
    )
    references = tuple(
        ToolReference(artifact_name=name, tool_name=f"tool{i}", url=url)
        for i, url in enumerate(urls)
    )
    return ArtifactRecord(
        definition=definition,
        references=references,
        validation=validate_definition(definition),
        relative_path=relative_path or f"{name}.yaml",
    )


def shared_tool(status=FetchStatus.verified):
    tool = ResolvedTool(
        url="https://x/t1.zip",
        file_name="t1.zip",
        tool_names=["tool0"],
        referencing_artifacts=["A", "B"],
    )
    if status == FetchStatus.verified:
        return tool.with_status(
            status,
            local_path=WORKSPACE / "external_tools" / "t1.zip",
            extracted_path=WORKSPACE / "external_tools" / "t1",
            sha256="ab" * 32,
            size_bytes=2048,
        )
    return tool.with_status(status, error="boom" if status == FetchStatus.failed else None)


def sample_manifest(status=FetchStatus.verified):
    return build_manifest(
        [
            record("B", ["https://x/t1.zip"], description="b"),
            record("A", ["https://x/t1.zip"], description="a"),
            record("C"),
        ],
        [shared_tool(status)],
        version="1.0",
        generated_at="2024-01-01T00:00:00+00:00",
        workspace=WORKSPACE,
        skipped_files=["broken.yaml"],
        duplicate_names=[],
    )


@pytest.mark.short
def test_build_manifest_summary():
    summary = sample_manifest().summary

    assert summary.total_artifacts == 3
    assert summary.total_tools == 1
    assert summary.artifacts_with_tools == 2
    assert summary.artifacts_without_tools == 1
    assert summary.verified_tools == 1
    assert summary.failed_tools == 0
    assert summary.invalid_artifacts == 1
    assert summary.skipped_files == ["broken.yaml"]


@pytest.mark.short
def test_build_manifest_entries_sorted_and_joined():
    manifest = sample_manifest()

    assert [entry.name for entry in manifest.artifacts] == ["A", "B", "C"]
    entry = manifest.artifacts[0]
    assert entry.tool_count == 1
    assert entry.tools == ["tool0"]
    assert entry.tool_details[0].file_name == "t1.zip"
    assert entry.tool_details[0].status == FetchStatus.verified
    assert entry.tool_details[0].extracted_to == "external_tools/t1"


@pytest.mark.short
def test_manifest_json_uses_pascal_case_fields():
    data = json.loads(manifest_to_json(sample_manifest()))

    assert data["Version"] == "1.0"
    assert data["Summary"]["TotalTools"] == 1
    assert data["Artifacts"][0]["Name"] == "A"
    assert data["Artifacts"][0]["ValidationScore"] == 60
    assert data["Tools"][0]["Status"] == "Verified"
    assert data["Tools"][0]["LocalPath"] == "external_tools/t1.zip"
    assert data["Tools"][0]["ReferencingArtifacts"] == ["A", "B"]
    assert "LastModified" not in data["Artifacts"][0]


@pytest.mark.short
def test_manifest_json_is_stable():
    assert manifest_to_json(sample_manifest()) == manifest_to_json(sample_manifest())


@pytest.mark.short
def test_manifest_csv_one_row_per_tool():
    rows = list(csv.DictReader(io.StringIO(manifest_to_csv(sample_manifest()))))

    assert rows == [
        {
            "Artifact": "A; B",
            "Url": "https://x/t1.zip",
            "FileName": "t1.zip",
            "ExtractedTo": "external_tools/t1",
            "Status": "Verified",
        }
    ]


@pytest.mark.short
def test_manifest_text_lists_failures():
    text = manifest_to_text(sample_manifest(FetchStatus.failed))

    assert "Failed tools" in text
    assert "t1.zip <https://x/t1.zip>" in text
    assert "needed by: A, B" in text
    assert "reason: boom" in text
    assert "Invalid artifacts" in text
    assert "broken.yaml" in text


@pytest.mark.short
def test_pending_tools_have_no_paths():
    manifest = sample_manifest(FetchStatus.pending)

    assert manifest.summary.pending_tools == 1
    assert manifest.tools[0].local_path is None
    assert manifest.artifacts[0].tool_details[0].extracted_to is None


@pytest.mark.short
def test_write_manifests(tmp_path):
    written = write_manifests(sample_manifest(), tmp_path)

    assert written == {
        "json": tmp_path / MANIFEST_JSON,
        "csv": tmp_path / TOOLS_CSV,
        "text": tmp_path / SUMMARY_TXT,
    }
    for path in written.values():
        assert path.read_text(encoding="utf-8")


@pytest.mark.short
def test_write_manifests_into_missing_directory(tmp_path):
    with pytest.raises(WorkspaceWriteError):
        write_manifests(sample_manifest(), tmp_path / "missing")
