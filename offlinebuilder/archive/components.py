"""
Workspace content selection for packaging.

The package is built from the full workspace directory, minus temporary
download files and lock files.
"""

from collections import Counter
from pathlib import Path
from typing import Dict, List

from offlinebuilder.constants import DOWNLOAD_SUFFIX

EXCLUDED_SUFFIXES = (DOWNLOAD_SUFFIX, ".lock")


def is_packageable(path: Path) -> bool:
    """False for partial downloads, lock files and anything not a regular file."""
    return path.is_file() and not path.name.endswith(EXCLUDED_SUFFIXES)


def collect_workspace_files(workspace: Path) -> List[Path]:
    """Every file that belongs in the package, sorted by archive path."""
    workspace = Path(workspace)
    if not workspace.is_dir():
        return []
    files = [p for p in workspace.rglob("*") if is_packageable(p)]
    return sorted(files, key=lambda p: p.relative_to(workspace).as_posix())


def summarize_components(files: List[Path], workspace: Path) -> Dict[str, int]:
    """Count files per top-level workspace entry, e.g. {'external_tools': 12}."""
    counts: Counter = Counter()
    for path in files:
        parts = Path(path).relative_to(workspace).parts
        counts[parts[0] if len(parts) > 1 else "."] += 1
    return dict(sorted(counts.items()))
