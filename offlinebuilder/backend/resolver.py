"""
Tool dependency resolution.

Turns the complete set of ToolReferences of a corpus into one ResolvedTool per
unique URL. This is a global barrier: it must see every reference before
producing anything, because a tool used by two artifacts in different files
must still be fetched exactly once.

Resolution rules:
1. URLs are grouped by exact string match after trimming whitespace. No other
   normalisation: two spellings of the same tool are two tools.
2. The file name is the URL's last path segment.
3. Every tool claims its file name in the tools directory and, for archives,
   the directory it is extracted to. Names are compared case-insensitively.
   A URL whose names are already claimed (by an earlier URL in sorted order)
   gets a short URL hash appended.
"""

import logging
from collections import defaultdict
from pathlib import PurePosixPath
from typing import Dict, Iterable, List, Set
from urllib.parse import unquote, urlparse

from offlinebuilder.constants import ARCHIVE_EXTENSIONS
from offlinebuilder.model import ResolvedTool, ToolReference
from offlinebuilder.utils import safe_filename, short_hash

logger = logging.getLogger(__name__)


def file_name_from_url(url: str) -> str:
    """Last path segment of a URL, made safe for the filesystem.

    Returns an empty string when the URL has no usable path segment.
    """
    path = urlparse(url).path
    segment = PurePosixPath(unquote(path)).name if path else ""
    return safe_filename(segment)


def _disambiguate(file_name: str, url: str) -> str:
    stem = PurePosixPath(file_name).stem
    suffix = "".join(PurePosixPath(file_name).suffixes[-1:])
    return f"{stem}-{short_hash(url)}{suffix}"


def _claimed_names(file_name: str) -> Set[str]:
    """Paths under the tools directory a tool occupies, lower-cased."""
    claimed = {file_name.lower()}
    if file_name.lower().endswith(ARCHIVE_EXTENSIONS):
        claimed.add(PurePosixPath(file_name).stem.lower())
    return claimed


def resolve_tools(references: Iterable[ToolReference]) -> List[ResolvedTool]:
    """Deduplicate tool references by URL.

    Args:
        references: Every ToolReference extracted from the corpus

    Returns:
        ResolvedTools in the Pending state, sorted by URL
    """
    artifacts: Dict[str, Set[str]] = defaultdict(set)
    names: Dict[str, Set[str]] = defaultdict(set)

    total = 0
    for reference in references:
        url = reference.url.strip()
        if not url:
            continue
        total += 1
        artifacts[url].add(reference.artifact_name)
        if reference.tool_name:
            names[url].add(reference.tool_name)

    resolved = []
    used_names: Set[str] = set()
    for url in sorted(artifacts):
        tool_names = sorted(names[url])
        file_name = file_name_from_url(url)
        if not file_name:
            base = safe_filename(tool_names[0]) if tool_names else ""
            file_name = f"{base or 'tool'}-{short_hash(url)}"
        elif _claimed_names(file_name) & used_names:
            logger.debug(f"File name {file_name} already taken, renaming for {url}")
            file_name = _disambiguate(file_name, url)
        used_names |= _claimed_names(file_name)

        resolved.append(
            ResolvedTool(
                url=url,
                file_name=file_name,
                tool_names=tool_names,
                referencing_artifacts=sorted(artifacts[url]),
            )
        )

    logger.debug(f"Resolved {total} tool references to {len(resolved)} unique tools")
    return resolved
