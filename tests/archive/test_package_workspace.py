"""
Unit tests for packaging a workspace into the offline archive.
"""

import zipfile
from pathlib import Path
from unittest.mock import Mock

import pytest

from offlinebuilder.archive import (
    collect_workspace_files,
    get_compression,
    package_name,
    package_workspace,
    summarize_components,
)
from offlinebuilder.exceptions import PackageError


@pytest.fixture
def workspace(tmp_path):
    ws = tmp_path / "out" / "offline_builder_v1.0"
    (ws / "binaries").mkdir(parents=True)
    (ws / "binaries" / "collector.exe").write_bytes(b"exe")
    (ws / "artifact_definitions" / "Windows").mkdir(parents=True)
    (ws / "artifact_definitions" / "Windows" / "a.yaml").write_text("name: A")
    (ws / "external_tools").mkdir()
    (ws / "external_tools" / "t1.zip").write_bytes(b"zip")
    (ws / "external_tools" / "t2.exe.download").write_bytes(b"partial")
    (ws / "external_tools" / "t1.zip.lock").write_text("")
    (ws / "offline_builder_manifest.json").write_text("{}")
    return ws


@pytest.mark.short
def test_package_name():
    assert package_name("1.2.0") == "offline_builder_v1.2.0"


@pytest.mark.short
def test_get_compression():
    assert get_compression("stored") == zipfile.ZIP_STORED
    assert get_compression("DEFLATED") == zipfile.ZIP_DEFLATED
    with pytest.raises(ValueError):
        get_compression("rar")


@pytest.mark.short
def test_collect_workspace_files_excludes_partials(workspace):
    files = [p.relative_to(workspace).as_posix() for p in collect_workspace_files(workspace)]

    assert files == [
        "artifact_definitions/Windows/a.yaml",
        "binaries/collector.exe",
        "external_tools/t1.zip",
        "offline_builder_manifest.json",
    ]


@pytest.mark.short
def test_summarize_components(workspace):
    files = collect_workspace_files(workspace)
    assert summarize_components(files, workspace) == {
        ".": 1,
        "artifact_definitions": 1,
        "binaries": 1,
        "external_tools": 1,
    }


@pytest.mark.short
def test_package_workspace_dry_run(workspace):
    result = package_workspace(workspace, "1.0", dry_run=True)

    assert result.archive_path is None
    assert len(result.files) == 4
    assert not list(workspace.parent.glob("*.zip"))


@pytest.mark.short
def test_package_workspace_creates_versioned_archive(workspace):
    result = package_workspace(workspace, "1.0")

    assert result.archive_path == workspace.parent / "offline_builder_v1.0.zip"
    assert not Path(str(result.archive_path) + ".download").exists()
    with zipfile.ZipFile(result.archive_path) as zf:
        names = zf.namelist()
        assert names == [
            "offline_builder_v1.0/artifact_definitions/Windows/a.yaml",
            "offline_builder_v1.0/binaries/collector.exe",
            "offline_builder_v1.0/external_tools/t1.zip",
            "offline_builder_v1.0/offline_builder_manifest.json",
        ]
        assert zf.read("offline_builder_v1.0/binaries/collector.exe") == b"exe"
        assert all(info.date_time == (1980, 1, 1, 0, 0, 0) for info in zf.infolist())


@pytest.mark.short
def test_package_workspace_is_reproducible(workspace, tmp_path):
    first = package_workspace(workspace, "1.0", outdir=tmp_path / "a").archive_path
    second = package_workspace(workspace, "1.0", outdir=tmp_path / "b").archive_path

    assert first.read_bytes() == second.read_bytes()


@pytest.mark.short
def test_package_workspace_compression(workspace):
    result = package_workspace(workspace, "1.0", compression=zipfile.ZIP_STORED)

    with zipfile.ZipFile(result.archive_path) as zf:
        assert {info.compress_type for info in zf.infolist()} == {zipfile.ZIP_STORED}


@pytest.mark.short
def test_failing_packager_is_tolerated(workspace, capture_logs):
    def build_msi(archive):
        raise RuntimeError("WiX not installed")

    build_exe = Mock(return_value=Path("setup.exe"))
    build_exe.__name__ = "build_exe"

    result = package_workspace(workspace, "1.0", packagers=[build_msi, build_exe])

    assert result.archive_path.exists()
    assert result.installers == [Path("setup.exe")]
    assert result.skipped_steps == ["build_msi: WiX not installed"]
    build_exe.assert_called_once_with(result.archive_path)
    assert "Skipping packaging step build_msi" in capture_logs.getvalue()


@pytest.mark.short
def test_package_workspace_unwritable_outdir(workspace, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")

    with pytest.raises(PackageError):
        package_workspace(workspace, "1.0", outdir=blocker / "out")
