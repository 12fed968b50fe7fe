"""Tests for the ofb command line interface."""

import json
import zipfile

import pytest
from click.testing import CliRunner

from offlinebuilder import __version__
from offlinebuilder.cli.main import cli

ARTIFACT = """\
name: Windows.Registry.Tools
description: Registry collection
author: me
precondition: SELECT OS From info() where OS = 'windows'
tools:
  - name: t1
    url: https://x/t1.exe
"""

UNNAMED = "description: nothing else\n"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def no_backoff_config(tmp_path):
    path = tmp_path / "offlinebuilder.cfg"
    path.write_text("[fetch]\nbackoff = 0\nretries = 0\n")
    return path


def invoke(runner, *args, **kwargs):
    return runner.invoke(cli, [str(arg) for arg in args], obj={}, **kwargs)


@pytest.mark.short
def test_version(runner):
    result = invoke(runner, "--version")
    assert result.exit_code == 0
    assert __version__ in result.output


@pytest.mark.short
def test_build_without_fetch(runner, corpus, tmp_path, fake_web):
    corpus.write("Windows/a.yaml", ARTIFACT)
    out = tmp_path / "out"

    result = invoke(
        runner, "build", "--source", corpus.root, "--version", "v2.0", "--output", out, "--no-fetch"
    )

    assert result.exit_code == 0, result.output
    assert "Created archive" in result.output
    assert (out / "offline_builder_v2.0.zip").exists()
    assert fake_web.calls == []


@pytest.mark.short
def test_build_version_from_file(runner, corpus, tmp_path, fake_web):
    corpus.write("VERSION", "v3.1\n")
    out = tmp_path / "out"

    result = invoke(runner, "build", "-s", corpus.root, "-o", out, "--no-fetch")

    assert result.exit_code == 0, result.output
    assert (out / "offline_builder_v3.1.zip").exists()


@pytest.mark.short
def test_build_version_from_environment(runner, corpus, tmp_path, fake_web):
    out = tmp_path / "out"

    result = invoke(
        runner, "build", "-s", corpus.root, "-o", out, "--no-fetch", env={"OFB_VERSION": "4.0"}
    )

    assert result.exit_code == 0, result.output
    assert (out / "offline_builder_v4.0.zip").exists()


@pytest.mark.short
def test_build_without_version_is_usage_error(runner, corpus, tmp_path):
    result = invoke(runner, "build", "-s", corpus.root, "-o", tmp_path / "out")

    assert result.exit_code == 2
    assert "VERSION" in result.output


@pytest.mark.short
def test_build_invalid_version(runner, corpus, tmp_path):
    result = invoke(runner, "build", "-s", corpus.root, "-v", "../1", "-o", tmp_path / "out")

    assert result.exit_code == 2
    assert "Invalid version tag" in result.output


@pytest.mark.short
def test_build_missing_source(runner, tmp_path):
    result = invoke(
        runner, "build", "-s", tmp_path / "missing", "-v", "1", "-o", tmp_path / "out"
    )
    assert result.exit_code == 2


@pytest.mark.short
def test_build_reports_failed_tools(runner, corpus, tmp_path, fake_web, no_backoff_config):
    corpus.write("Windows/a.yaml", ARTIFACT)
    corpus.write("misc/unnamed.yaml", UNNAMED)
    out = tmp_path / "out"

    result = invoke(
        runner,
        "build",
        "-s",
        corpus.root,
        "-v",
        "1.0",
        "-o",
        out,
        "--config",
        no_backoff_config,
    )

    assert result.exit_code == 0, result.output
    assert fake_web.calls == ["https://x/t1.exe"]
    assert "1 tool downloads failed and 1 artifacts are invalid" in result.output
    manifest = json.loads(
        (out / "offline_builder_v1.0" / "offline_builder_manifest.json").read_text()
    )
    assert manifest["Summary"]["FailedTools"] == 1


@pytest.mark.short
def test_build_fetches_tools(runner, corpus, tmp_path, fake_web, no_backoff_config):
    corpus.write("Windows/a.yaml", ARTIFACT)
    fake_web.routes["https://x/t1.exe"] = b"MZ"
    out = tmp_path / "out"

    result = invoke(
        runner,
        "build",
        "-s",
        corpus.root,
        "-v",
        "1.0",
        "-o",
        out,
        "--compression",
        "stored",
        "--config",
        no_backoff_config,
    )

    assert result.exit_code == 0, result.output
    with zipfile.ZipFile(out / "offline_builder_v1.0.zip") as zf:
        assert zf.read("offline_builder_v1.0/external_tools/t1.exe") == b"MZ"
        assert {info.compress_type for info in zf.infolist()} == {zipfile.ZIP_STORED}


@pytest.mark.short
def test_build_copies_binaries(runner, corpus, tmp_path, fake_web):
    binaries = tmp_path / "bin"
    binaries.mkdir()
    (binaries / "velociraptor.exe").write_bytes(b"exe")
    out = tmp_path / "out"

    result = invoke(
        runner, "build", "-s", corpus.root, "-v", "1", "-o", out, "--no-fetch", "--binaries", binaries
    )

    assert result.exit_code == 0, result.output
    assert (out / "offline_builder_v1" / "binaries" / "velociraptor.exe").exists()


@pytest.mark.short
def test_build_unwritable_output(runner, corpus, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")

    result = invoke(
        runner, "build", "-s", corpus.root, "-v", "1", "-o", blocker / "out", "--no-fetch"
    )

    assert result.exit_code == 1


@pytest.mark.short
def test_build_rejects_unknown_compression(runner, corpus, tmp_path):
    result = invoke(
        runner, "build", "-s", corpus.root, "-v", "1", "-o", tmp_path / "out", "--compression", "rar"
    )
    assert result.exit_code == 2


@pytest.mark.short
def test_build_debug_flag(runner, corpus, tmp_path):
    result = invoke(
        runner, "--debug", "build", "-s", corpus.root, "-v", "1", "-o", tmp_path / "out", "--no-fetch"
    )
    assert result.exit_code == 0, result.output


@pytest.mark.short
def test_scan_lists_scores(runner, corpus):
    corpus.write("Windows/a.yaml", ARTIFACT)

    result = invoke(runner, "scan", "--source", corpus.root)

    assert result.exit_code == 0, result.output
    assert "Windows.Registry.Tools" in result.output


@pytest.mark.short
def test_scan_writes_json_and_csv(runner, corpus, tmp_path):
    corpus.write("Windows/a.yaml", ARTIFACT)
    json_file = tmp_path / "scan.json"
    csv_file = tmp_path / "tools.csv"

    result = invoke(
        runner, "scan", "-s", corpus.root, "--json", json_file, "--tools-csv", csv_file
    )

    assert result.exit_code == 0, result.output
    data = json.loads(json_file.read_text())
    assert data["Version"] == "unversioned"
    assert data["Summary"]["TotalTools"] == 1
    assert data["Tools"][0]["Status"] == "Pending"
    assert data["Artifacts"][0]["ValidationScore"] == 90
    assert csv_file.read_text().splitlines()[1].startswith("Windows.Registry.Tools,")


@pytest.mark.short
def test_scan_min_score(runner, corpus):
    corpus.write("Windows/a.yaml", ARTIFACT)
    corpus.write("misc/unnamed.yaml", UNNAMED)

    assert invoke(runner, "scan", "-s", corpus.root, "--min-score", "10").exit_code == 0
    assert invoke(runner, "scan", "-s", corpus.root, "--min-score", "50").exit_code == 1
