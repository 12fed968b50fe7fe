"""
Archive module for creating offline packages.

This module bundles a prepared workspace (binaries, artifact definitions,
fetched tools and manifests) into one versioned zip archive.
"""

from .archive import (
    COMPRESSION_METHODS,
    PackageResult,
    get_compression,
    package_name,
    package_workspace,
)
from .components import collect_workspace_files, is_packageable, summarize_components

__all__ = [
    "COMPRESSION_METHODS",
    "PackageResult",
    "get_compression",
    "package_name",
    "package_workspace",
    "collect_workspace_files",
    "is_packageable",
    "summarize_components",
]
