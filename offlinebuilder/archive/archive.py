"""
Assemble the offline package from a prepared workspace.

Archive creation is the only step that must succeed. Installer builders
(MSI/EXE and similar) are optional callables run afterwards; when they fail
the package is still reported as built.
"""

import logging
import os
import shutil
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from offlinebuilder.constants import ARCHIVE_DATE_TIME, DOWNLOAD_SUFFIX, PACKAGE_PREFIX
from offlinebuilder.exceptions import PackageError

from .components import collect_workspace_files, summarize_components

logger = logging.getLogger(__name__)

Packager = Callable[[Path], Path]

COMPRESSION_METHODS = {
    "stored": zipfile.ZIP_STORED,
    "deflated": zipfile.ZIP_DEFLATED,
    "bzip2": zipfile.ZIP_BZIP2,
    "lzma": zipfile.ZIP_LZMA,
}


@dataclass
class PackageResult:
    archive_path: Optional[Path]
    files: List[Path]
    installers: List[Path] = field(default_factory=list)
    skipped_steps: List[str] = field(default_factory=list)


def package_name(version: str) -> str:
    """Base name of the package, e.g. ``offline_builder_v1.2.0``."""
    return f"{PACKAGE_PREFIX}{version}"


def get_compression(name: str) -> int:
    try:
        return COMPRESSION_METHODS[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown compression '{name}', expected one of {', '.join(COMPRESSION_METHODS)}"
        )


def _write_member(
    archive: zipfile.ZipFile, path: Path, arcname: str, compression: int
) -> None:
    info = zipfile.ZipInfo(arcname, date_time=ARCHIVE_DATE_TIME)
    info.compress_type = compression
    # keep the permission bits, tools may be executables
    info.external_attr = (path.stat().st_mode & 0o777 | 0o100000) << 16
    with open(path, "rb") as src, archive.open(info, "w", force_zip64=True) as dst:
        shutil.copyfileobj(src, dst, 1024 * 1024)


def package_workspace(
    workspace: Path,
    version: str,
    outdir: Optional[Path] = None,
    compression: int = zipfile.ZIP_DEFLATED,
    dry_run: bool = False,
    packagers: Sequence[Packager] = (),
) -> PackageResult:
    """
    Create ``offline_builder_v<version>.zip`` from the workspace.

    Args:
        workspace: Prepared workspace directory
        version: Resolved corpus version
        outdir: Where the archive goes (default: the workspace's parent)
        compression: zipfile compression constant
        dry_run: If True, only list the files that would be archived
        packagers: Optional installer builders, called with the archive path

    Returns:
        PackageResult with the archive path and the archived files

    Raises:
        PackageError: if the archive cannot be written
    """
    workspace = Path(workspace)
    outdir = Path(outdir) if outdir is not None else workspace.parent
    files = collect_workspace_files(workspace)
    if dry_run:
        return PackageResult(archive_path=None, files=files)

    name = package_name(version)
    archive_path = outdir / f"{name}.zip"
    temporary = archive_path.with_name(archive_path.name + DOWNLOAD_SUFFIX)

    try:
        outdir.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(temporary, "w", compression=compression) as archive:
            for path in files:
                arcname = f"{name}/{path.relative_to(workspace).as_posix()}"
                _write_member(archive, path, arcname, compression)
        os.replace(temporary, archive_path)
    except (OSError, zipfile.LargeZipFile, RuntimeError) as e:
        try:
            temporary.unlink()
        except OSError:
            pass
        raise PackageError(f"Could not create {archive_path}: {e}") from e

    logger.info(f"Created archive {archive_path} with {len(files)} files")
    logger.debug(f"Archive contents per directory: {summarize_components(files, workspace)}")
    result = PackageResult(archive_path=archive_path, files=files)

    for packager in packagers:
        step = getattr(packager, "__name__", repr(packager))
        try:
            result.installers.append(packager(archive_path))
        except Exception as e:
            # installer formats are optional, the archive is already complete
            logger.warning(f"Skipping packaging step {step}: {e}")
            result.skipped_steps.append(f"{step}: {e}")

    return result
