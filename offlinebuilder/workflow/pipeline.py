"""
Staged batch pipeline producing an offline package.

Stages and their barriers:

    load -> parse/extract   parallel per file
    resolve                 barrier, needs every reference of the corpus
    fetch                   parallel per unique tool, failures isolated
    validate                parallel per artifact, independent of fetching
    manifest                barrier, single-threaded fold of all results
    package                 barrier, needs the finished workspace

Workers only return values; all aggregation happens in the calling thread,
so no shared state needs locking.
"""

import logging
import re
import shutil
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from offlinebuilder.archive import (
    PackageResult,
    get_compression,
    package_name,
    package_workspace,
)
from offlinebuilder.backend import resolve_tools
from offlinebuilder.cli.utils.logging import add_file_handler, remove_file_handler
from offlinebuilder.constants import (
    BINARIES_DIR,
    BUILD_LOG,
    DEFAULT_BACKOFF,
    DEFAULT_COMPRESSION,
    DEFAULT_CONCURRENCY,
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT,
    DEFINITIONS_DIR,
    TOOLS_DIR,
    VERSION_FILE,
)
from offlinebuilder.corpus import (
    extract_tool_references,
    load_definitions,
    parse_definition,
)
from offlinebuilder.exceptions import FileReadError, WorkspaceWriteError
from offlinebuilder.io.fetch import fetch_all
from offlinebuilder.manifest import ArtifactRecord, build_manifest, write_manifests
from offlinebuilder.model import (
    ArtifactDefinition,
    FetchStatus,
    Manifest,
    ParseFailure,
    ResolvedTool,
    ToolReference,
)
from offlinebuilder.utils import find_duplicates
from offlinebuilder.validators import validate_definition
from offlinebuilder.workflow.pool import run_parallel

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._+-]*$")


def normalize_version(tag: str) -> str:
    """Turn a release tag into the version used in output names.

    A single leading 'v' is dropped: 'v1.2.0' -> '1.2.0'.

    Raises:
        ValueError: for empty tags or tags unusable in a file name
    """
    version = str(tag).strip()
    if version[:1] in ("v", "V") and len(version) > 1:
        version = version[1:]
    if not version or not _VERSION_RE.match(version) or ".." in version:
        raise ValueError(f"Invalid version tag: '{tag}'")
    return version


def resolve_version(tag: Optional[str], source: Path) -> str:
    """Use the given tag, or the corpus' VERSION file if there is none.

    Raises:
        ValueError: if neither yields a usable version
    """
    if tag:
        return normalize_version(tag)

    version_file = Path(source) / VERSION_FILE
    try:
        content = version_file.read_text(encoding="utf-8").strip()
    except OSError:
        raise ValueError(
            f"No version given and no readable {VERSION_FILE} file in {source}"
        )
    return normalize_version(content.splitlines()[0] if content else "")


@dataclass(frozen=True)
class ParsedArtifact:
    definition: ArtifactDefinition
    references: Tuple[ToolReference, ...]
    relative_path: str


@dataclass
class CorpusScan:
    """Result of the load, parse, extract and resolve stages."""

    source: Path
    parsed: List[ParsedArtifact] = field(default_factory=list)
    tools: List[ResolvedTool] = field(default_factory=list)
    skipped_files: List[str] = field(default_factory=list)
    parse_failures: List[ParseFailure] = field(default_factory=list)
    duplicate_names: List[str] = field(default_factory=list)

    @property
    def references(self) -> List[ToolReference]:
        return [ref for item in self.parsed for ref in item.references]


def _parse_one(
    source: Path, path: Path, raw_text: str
) -> Union[ParsedArtifact, ParseFailure]:
    result = parse_definition(raw_text, path)
    if isinstance(result, ParseFailure):
        return result
    references = extract_tool_references(raw_text, default_artifact=result.display_name)
    return ParsedArtifact(
        definition=result,
        references=tuple(references),
        relative_path=path.relative_to(source).as_posix(),
    )


def scan_corpus(
    source: Path,
    concurrency: int = DEFAULT_CONCURRENCY,
    cancel_event: Optional[threading.Event] = None,
) -> CorpusScan:
    """Load, parse and extract every definition, then resolve tools."""
    source = Path(source)
    scan = CorpusScan(source=source)

    def skipped(error: FileReadError) -> None:
        scan.skipped_files.append(error.path.relative_to(source).as_posix())

    loaded = list(load_definitions(source, on_error=skipped))
    logger.debug(f"Loaded {len(loaded)} definition files from {source}")

    results = run_parallel(
        lambda item: _parse_one(source, *item), loaded, concurrency, cancel_event
    )
    for result in results:
        if result is None:
            continue
        if isinstance(result, ParseFailure):
            logger.warning(f"Skipping definition {result.path}: {result.reason}")
            scan.parse_failures.append(result)
            scan.skipped_files.append(result.path.relative_to(source).as_posix())
        else:
            scan.parsed.append(result)

    scan.duplicate_names = find_duplicates(
        item.definition.name for item in scan.parsed if item.definition.name
    )
    for name in scan.duplicate_names:
        logger.warning(f"Artifact name '{name}' is defined more than once")

    scan.tools = resolve_tools(scan.references)
    logger.info(
        f"Found {len(scan.parsed)} artifacts referencing {len(scan.tools)} unique tools"
    )
    return scan


def validate_corpus(
    parsed: Sequence[ParsedArtifact],
    concurrency: int = DEFAULT_CONCURRENCY,
    cancel_event: Optional[threading.Event] = None,
) -> List[ArtifactRecord]:
    """Score every parsed artifact."""

    def validate(item: ParsedArtifact) -> ArtifactRecord:
        return ArtifactRecord(
            definition=item.definition,
            references=item.references,
            validation=validate_definition(item.definition),
            relative_path=item.relative_path,
        )

    results = run_parallel(validate, parsed, concurrency, cancel_event)
    return [record for record in results if record is not None]


# Workspace


def prepare_workspace(output: Path, version: str) -> Path:
    """Create the workspace layout, clearing stale definitions.

    Fetched tools are kept so a rebuild can reuse them.

    Raises:
        WorkspaceWriteError: if any directory cannot be created
    """
    workspace = Path(output) / package_name(version)
    try:
        definitions = workspace / DEFINITIONS_DIR
        if definitions.exists():
            shutil.rmtree(definitions)
        for directory in (BINARIES_DIR, DEFINITIONS_DIR, TOOLS_DIR):
            (workspace / directory).mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise WorkspaceWriteError(workspace, str(e)) from e
    return workspace


def copy_definitions(scan: CorpusScan, workspace: Path) -> int:
    """Copy every readable definition into the workspace, keeping the tree."""
    target_root = workspace / DEFINITIONS_DIR
    copied = 0
    for item in scan.parsed:
        target = target_root / item.relative_path
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(item.definition.source_file, target)
        except OSError as e:
            raise WorkspaceWriteError(target, str(e)) from e
        copied += 1
    return copied


def copy_binaries(binaries: Path, workspace: Path) -> None:
    target = workspace / BINARIES_DIR
    try:
        shutil.copytree(binaries, target, dirs_exist_ok=True)
    except OSError as e:
        raise WorkspaceWriteError(target, str(e)) from e


def prune_tools_dir(tools_dir: Path, tools: Sequence[ResolvedTool]) -> List[Path]:
    """Remove leftovers of tools that are no longer referenced."""
    expected = set()
    for tool in tools:
        expected.update({tool.file_name, f"{tool.file_name}.lock", tool.archive_stem})

    removed = []
    if not tools_dir.is_dir():
        return removed
    for entry in sorted(tools_dir.iterdir()):
        if entry.name in expected:
            continue
        try:
            if entry.is_dir():
                shutil.rmtree(entry)
            else:
                entry.unlink()
        except OSError as e:
            raise WorkspaceWriteError(entry, str(e)) from e
        logger.debug(f"Removed stale tool entry {entry.name}")
        removed.append(entry)
    return removed


# Build


@dataclass(frozen=True)
class BuildOptions:
    source: Path
    version: str
    output: Path
    concurrency: int = DEFAULT_CONCURRENCY
    timeout: float = DEFAULT_TIMEOUT
    retries: int = DEFAULT_RETRIES
    backoff: float = DEFAULT_BACKOFF
    fetch: bool = True
    refresh: bool = False
    binaries: Optional[Path] = None
    compression: str = DEFAULT_COMPRESSION
    verbose: bool = False


@dataclass
class BuildResult:
    workspace: Path
    manifest: Manifest
    package: PackageResult

    @property
    def archive_path(self) -> Optional[Path]:
        return self.package.archive_path

    @property
    def failed_tools(self) -> int:
        return self.manifest.summary.failed_tools

    @property
    def invalid_artifacts(self) -> int:
        return self.manifest.summary.invalid_artifacts


def build_package(
    options: BuildOptions,
    cancel_event: Optional[threading.Event] = None,
    generated_at: Optional[str] = None,
    packagers: Sequence = (),
) -> BuildResult:
    """Run every stage and produce the offline package.

    Raises:
        WorkspaceWriteError: if the workspace cannot be prepared or written
        PackageError: if the archive cannot be created
    """
    compression = get_compression(options.compression)
    workspace = prepare_workspace(options.output, options.version)

    try:
        log_handler = add_file_handler(workspace / BUILD_LOG)
    except OSError as e:
        raise WorkspaceWriteError(workspace / BUILD_LOG, str(e)) from e

    try:
        logger.info(
            f"Building offline package v{options.version} from {options.source}"
        )
        scan = scan_corpus(options.source, options.concurrency, cancel_event)
        copy_definitions(scan, workspace)
        if options.binaries is not None:
            copy_binaries(options.binaries, workspace)

        tools = scan.tools
        if options.fetch:
            tools = fetch_all(
                tools,
                workspace / TOOLS_DIR,
                concurrency=options.concurrency,
                timeout=options.timeout,
                retries=options.retries,
                backoff=options.backoff,
                refresh=options.refresh,
                cancel_event=cancel_event,
                verbose=options.verbose,
            )
        else:
            logger.info("Tool downloads disabled, tools are listed as Pending")
        prune_tools_dir(workspace / TOOLS_DIR, tools)

        records = validate_corpus(scan.parsed, options.concurrency, cancel_event)

        manifest = build_manifest(
            records,
            tools,
            version=options.version,
            generated_at=generated_at
            or datetime.now(timezone.utc).isoformat(timespec="seconds"),
            workspace=workspace,
            skipped_files=scan.skipped_files,
            duplicate_names=scan.duplicate_names,
        )
        write_manifests(manifest, workspace)
        log_summary(manifest)
    finally:
        remove_file_handler(log_handler)

    package = package_workspace(
        workspace,
        options.version,
        outdir=options.output,
        compression=compression,
        packagers=packagers,
    )
    return BuildResult(workspace=workspace, manifest=manifest, package=package)


def log_summary(manifest: Manifest) -> None:
    s = manifest.summary
    logger.info(
        f"{s.total_artifacts} artifacts, {s.total_tools} unique tools "
        f"({s.verified_tools} fetched, {s.failed_tools} failed, "
        f"{s.pending_tools} not fetched), {s.invalid_artifacts} invalid artifacts"
    )
    for tool in manifest.tools:
        if tool.status == FetchStatus.failed:
            logger.warning(f"Missing tool {tool.file_name}: {tool.error}")
